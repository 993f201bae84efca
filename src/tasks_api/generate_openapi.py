"""
Export the OpenAPI document of the tasks API without starting a server.

Usage:
    python -m tasks_api.generate_openapi [output-path]

The default output is interfaces/openapi.json at the project root.
"""
from __future__ import annotations

import json
import os
import sys
from typing import Any, Dict, Optional

from .main import app, openapi_tags


def _merge_tags(schema: Dict[str, Any]) -> None:
    # Tags declared on the app but unused by any route are otherwise omitted
    tags = {t["name"]: t for t in schema.get("tags") or [] if isinstance(t, dict) and "name" in t}
    for tag in openapi_tags:
        tags.setdefault(tag["name"], tag)
    if tags:
        schema["tags"] = list(tags.values())


def default_output_path() -> str:
    package_dir = os.path.dirname(os.path.abspath(__file__))
    project_root = os.path.dirname(os.path.dirname(package_dir))
    return os.path.join(project_root, "interfaces", "openapi.json")


# PUBLIC_INTERFACE
def generate_openapi(path: Optional[str] = None) -> str:
    """Write the schema to ``path`` (or the default location) and return the path written."""
    out_path = path or default_output_path()
    document = app.openapi()
    _merge_tags(document)
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as fh:
        json.dump(document, fh, indent=2, ensure_ascii=False)
    return out_path


def main() -> None:
    written = generate_openapi(sys.argv[1] if len(sys.argv) > 1 else None)
    print(f"OpenAPI schema written to {written}")


if __name__ == "__main__":
    main()
