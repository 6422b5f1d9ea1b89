"""Every third-party module imported by the shipped code is a declared dependency."""

import ast
import re
import sys
import tomllib
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
LOCAL = {"src", "config"}
# import name -> distribution name, where they differ
DISTRIBUTIONS = {"jose": "python-jose", "pydantic_settings": "pydantic-settings"}


def _normalize(name: str) -> str:
    return re.sub(r"[-_.]+", "-", name).lower()


def _declared() -> set[str]:
    project = tomllib.loads((ROOT / "pyproject.toml").read_text())["project"]
    return {
        _normalize(re.split(r"[<>=!~\[; ]", dep, maxsplit=1)[0])
        for dep in project["dependencies"]
    }


def _imported() -> set[str]:
    names: set[str] = set()
    for folder in ("src", "config", "alembic"):
        for path in (ROOT / folder).rglob("*.py"):
            for node in ast.walk(ast.parse(path.read_text())):
                if isinstance(node, ast.Import):
                    names.update(alias.name.split(".")[0] for alias in node.names)
                elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
                    names.add(node.module.split(".")[0])
    return {n for n in names if n not in LOCAL and n not in sys.stdlib_module_names}


def test_third_party_imports_are_declared() -> None:
    declared = _declared()
    missing = {
        name for name in _imported() if _normalize(DISTRIBUTIONS.get(name, name)) not in declared
    }
    assert missing == set()


def test_starlette_is_declared_for_the_middlewares() -> None:
    assert "starlette" in _imported()
    assert "starlette" in _declared()
