import tomllib

import pytest

from pyvulnscan.extractor import (
    extract_imports_pyproject,
    extract_imports_python,
    extract_imports_reqs,
    extract_imports_setup_py,
    parse_opt_deps_pyproject,
    parse_requirement,
)


def test_parse_requirement_with_version():
    dep = parse_requirement("requests >= 2.0.8")
    assert dep.name == "requests"
    assert dep.version == "2.0.8"
    assert dep.comparator == ">="
    assert dep.version_status.source is True
    assert dep.version_status.pip is False


def test_parse_requirement_without_version():
    dep = parse_requirement("requests")
    assert dep.name == "requests"
    assert dep.version is None
    assert dep.comparator is None
    assert dep.version_status.source is False


def test_parse_requirement_keeps_first_written_specifier():
    dep = parse_requirement("django<4,>=3.2")
    assert (dep.comparator, dep.version) == ("<", "4")
    dep = parse_requirement("django>=3.2,<4")
    assert (dep.comparator, dep.version) == (">=", "3.2")


def test_parse_requirement_url_is_skipped():
    assert parse_requirement("pkg @ https://example.com/pkg.tar.gz") is None


def test_parse_requirement_invalid_raises():
    with pytest.raises(ValueError):
        parse_requirement("--hash=sha256:abc")


def test_extract_imports_reqs_valid_line():
    deps = extract_imports_reqs("flask==2.0.1")
    assert [(d.name, d.version, d.comparator) for d in deps] == [("flask", "2.0.1", "==")]


def test_extract_imports_reqs_invalid_reports(capsys):
    assert extract_imports_reqs("# a comment") == []
    assert capsys.readouterr().err.strip() != ""


def test_extract_imports_python_import():
    deps = extract_imports_python("import os")
    assert [d.name for d in deps] == ["os"]
    assert deps[0].version is None
    assert deps[0].version_status.source is False


def test_extract_imports_python_from_keeps_keyword():
    assert [d.name for d in extract_imports_python("from os import path")] == ["from os"]


def test_extract_imports_python_multiple_names():
    assert [d.name for d in extract_imports_python("import os, sys")] == ["os, sys"]


def test_extract_imports_python_non_import():
    assert extract_imports_python("x = 1") == []


def test_extract_imports_python_indented():
    assert [d.name for d in extract_imports_python("    import json")] == ["json"]


def test_extract_imports_setup_py():
    content = 'setup(\n    name="demo",\n    install_requires=["requests>=2.0", "flask"],\n)\n'
    deps = extract_imports_setup_py(content)
    assert [(d.name, d.version) for d in deps] == [("requests", "2.0"), ("flask", None)]


def test_extract_imports_setup_py_single_quotes_are_skipped():
    assert extract_imports_setup_py("install_requires=['requests']") == []


def test_extract_imports_setup_py_no_section():
    assert extract_imports_setup_py("setup(name='demo')") == []


def test_parse_opt_deps_pyproject_sorted_groups():
    table = {"test": ["pytest"], "docs": ["sphinx>=5"]}
    assert parse_opt_deps_pyproject(table) == ["sphinx>=5", "pytest"]


def test_parse_opt_deps_pyproject_rejects_non_list():
    with pytest.raises(ValueError):
        parse_opt_deps_pyproject({"docs": "sphinx"})


def test_parse_opt_deps_pyproject_rejects_non_string():
    with pytest.raises(ValueError):
        parse_opt_deps_pyproject({"docs": [1]})


def test_extract_imports_pyproject_project_section():
    content = """
[project]
name = "demo"
dependencies = ["requests>=2.28", "flask"]

[project.optional-dependencies]
docs = ["sphinx>=5"]
"""
    deps = extract_imports_pyproject(content)
    assert [(d.name, d.version) for d in deps] == [
        ("requests", "2.28"),
        ("flask", None),
        ("sphinx", "5"),
    ]


def test_extract_imports_pyproject_poetry():
    content = """
[tool.poetry.dependencies]
python = "^3.8"
requests = "^2.28"
flask = "*"
django = "~4.0"
"""
    deps = extract_imports_pyproject(content)
    assert [d.name for d in deps] == ["flask", "python", "requests"]
    by_name = {d.name: d for d in deps}
    assert by_name["requests"].version == "2.28"
    assert by_name["requests"].comparator == ">="
    assert by_name["flask"].version is None


def test_extract_imports_pyproject_dedups_consecutive():
    content = '[project]\ndependencies = ["requests", "requests", "flask", "requests"]\n'
    assert [d.name for d in extract_imports_pyproject(content)] == ["requests", "flask", "requests"]


def test_extract_imports_pyproject_invalid_toml():
    with pytest.raises(tomllib.TOMLDecodeError):
        extract_imports_pyproject("[project\n")


def test_extract_imports_pyproject_poetry_section_must_be_table():
    with pytest.raises(ValueError):
        extract_imports_pyproject('[tool.poetry]\ndependencies = "requests"\n')


def test_extract_imports_pyproject_bad_dependency_value(capsys):
    assert extract_imports_pyproject("[project]\ndependencies = 5\n") == []
    assert "Invalid dependency syntax" in capsys.readouterr().err


def test_extract_imports_pyproject_without_dependencies():
    assert extract_imports_pyproject('[project]\nname = "demo"\n') == []