"""
Packaging metadata and interpreter floor.

1. pyproject.toml declares no readme other than an existing README file.
2. Every package listed for setuptools exists on disk.
3. Source keeps to the declared requires-python floor (3.10): no
   ``datetime.UTC``, which arrived in 3.11.

These tests read files only.
"""

import ast
import re
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
PYPROJECT = (ROOT / "pyproject.toml").read_text()

PACKAGES = ("books_kernel", "books_engines", "books_config", "books_modules", "books_services")


def _uses_datetime_utc(path: Path) -> list[int]:
    tree = ast.parse(path.read_text(), filename=str(path))
    hits = []
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.module == "datetime":
            hits.extend(node.lineno for alias in node.names if alias.name == "UTC")
        elif isinstance(node, ast.Attribute) and node.attr == "UTC":
            if isinstance(node.value, ast.Name) and node.value.id == "datetime":
                hits.append(node.lineno)
    return hits


class TestProjectMetadata:

    def test_readme_is_a_readme(self):
        match = re.search(r'^readme\s*=\s*"([^"]+)"', PYPROJECT, re.MULTILINE)
        if match is None:
            return
        assert match.group(1).upper().startswith("README")
        assert (ROOT / match.group(1)).is_file()

    def test_declared_packages_exist(self):
        block = PYPROJECT.split("packages = [", 1)[1].split("]", 1)[0]
        for name in re.findall(r'"([\w.]+)"', block):
            assert (ROOT / name.replace(".", "/") / "__init__.py").is_file(), name

    def test_python_floor(self):
        assert 'requires-python = ">=3.10"' in PYPROJECT
        violations = [
            f"{path.relative_to(ROOT)}:{line}"
            for package in PACKAGES
            for path in sorted((ROOT / package).rglob("*.py"))
            for line in _uses_datetime_utc(path)
        ]
        assert violations == []
