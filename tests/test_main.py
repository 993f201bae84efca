import pytest
import uvicorn

from tasks_api.main import _error_field, app


@pytest.mark.parametrize(
    "loc,field",
    [
        (("body", "title"), "title"),
        (("body", "tags", 0), "tags.0"),
        (("query", "id"), "id"),
        (("body", 1), "body"),
        (("body",), "body"),
        ((), "body"),
    ],
)
def test_error_field(loc, field):
    assert _error_field(loc) == field


def test_app_loads_under_uvicorn():
    config = uvicorn.Config("tasks_api.main:app", log_config=None)
    config.load()
    assert config.loaded
    assert config.loaded_app is not None


def test_health_check(client):
    res = client.get("/")
    assert res.status_code == 200
    assert res.json() == {"message": "Healthy", "backend": "memory"}
    assert app.title == "Tasks Backend"
