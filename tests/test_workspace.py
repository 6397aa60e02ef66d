"""Tests for project scanning and framework detection."""

from pathlib import Path

from depure._extraction import CandidateExtractor, detect_framework, scan_workspace
from depure._extraction.workspace import find_local_modules, is_excluded


def write(path: Path, content: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestIsExcluded:
    def test_component_match(self):
        assert is_excluded(".venv/lib/site.py", [".venv"])
        assert is_excluded("pkg/__pycache__/x.pyc", ["__pycache__"])

    def test_glob_match(self):
        assert is_excluded("mypkg.egg-info/PKG-INFO", ["*.egg-info"])

    def test_not_excluded(self):
        assert not is_excluded("src/app/main.py", [".venv", "build"])


class TestFindLocalModules:
    def test_top_level_modules_and_packages(self, tmp_path):
        write(tmp_path / "utils.py")
        write(tmp_path / "core" / "__init__.py")
        write(tmp_path / "data" / "file.csv")
        write(tmp_path / "src" / "lib_pkg" / "__init__.py")

        local = find_local_modules(tmp_path)

        assert {"utils", "core", "lib_pkg"} <= local
        assert "data" not in local

    def test_django_project_name_is_local(self, tmp_path):
        project = tmp_path / "mysite"
        write(project / "manage.py")
        assert "mysite" in find_local_modules(project)


class TestDetectFramework:
    def test_django(self, tmp_path):
        write(
            tmp_path / "manage.py",
            "import os\nos.environ.setdefault('DJANGO_SETTINGS_MODULE', 'mysite.settings')\n",
        )
        write(
            tmp_path / "mysite" / "settings.py",
            "INSTALLED_APPS = [\n    'django.contrib.admin',\n    'rest_framework',\n    'corsheaders.apps',\n]\n",
        )

        context = detect_framework(tmp_path)

        assert context.type == "Django"
        assert context.installed_apps == ["rest_framework", "corsheaders"]
        notes = context.to_notes()
        assert "Project type: Django" in notes
        assert "mysite/settings.py" in notes

    def test_django_missing_settings(self, tmp_path):
        write(tmp_path / "manage.py", "os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'proj.settings')\n")
        context = detect_framework(tmp_path)
        assert context.type == "Django"
        assert context.installed_apps == []
        assert any("could not be read" in d for d in context.details)

    def test_flask(self, tmp_path):
        write(tmp_path / "app.py", "from flask import Flask\napp = Flask(__name__)\n")
        assert detect_framework(tmp_path).type == "Flask"

    def test_fastapi(self, tmp_path):
        write(tmp_path / "main.py", "from fastapi import FastAPI\napp = FastAPI()\n")
        assert detect_framework(tmp_path).type == "FastAPI"

    def test_generic(self, tmp_path):
        write(tmp_path / "script.py", "print('hi')\n")
        context = detect_framework(tmp_path)
        assert context.type == "Generic"
        assert context.to_notes() is None


class TestScanWorkspace:
    def test_collects_imports_tree_and_local_names(self, tmp_path):
        write(tmp_path / "app.py", "import requests\nfrom helpers import slugify\n\ndef main():\n    import yaml\n")
        write(tmp_path / "helpers.py", "import requests\n\nclass Slug:\n    def method(self):\n        pass\n")
        write(tmp_path / ".venv" / "lib" / "ignored.py", "import should_not_appear\n")
        write(tmp_path / "README.md", "# readme\n")

        scan = scan_workspace(tmp_path)

        assert scan.import_lines == ["import requests", "from helpers import slugify", "import yaml"]
        assert "helpers" in scan.local_modules
        assert {"main", "Slug"} <= scan.local_symbols
        assert "method" not in scan.local_symbols
        assert scan.file_tree.splitlines() == ["README.md", "app.py", "helpers.py"]
        assert all(".venv" not in str(p) for p in scan.python_files)

    def test_scope_limits_analysed_files(self, tmp_path):
        write(tmp_path / "pkg" / "a.py", "import click\n")
        write(tmp_path / "other" / "b.py", "import rich\n")

        scan = scan_workspace(tmp_path, paths=[tmp_path / "pkg"])

        assert scan.import_lines == ["import click"]
        assert "other/b.py" in scan.file_tree

    def test_unreadable_file_is_skipped(self, tmp_path):
        write(tmp_path / "good.py", "import attrs\n")
        (tmp_path / "bad.py").write_bytes(b"\xff\xfe\x00import broken")

        scan = scan_workspace(tmp_path)

        assert scan.import_lines == ["import attrs"]
        assert any(p.endswith("bad.py") for p in scan.unreadable)

    def test_extra_identifiers_from_installed_apps(self, tmp_path):
        write(tmp_path / "manage.py", "os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'site_cfg.settings')\n")
        write(tmp_path / "site_cfg" / "settings.py", "INSTALLED_APPS = ('debug_toolbar',)\n")

        scan = scan_workspace(tmp_path)

        assert scan.extra_identifiers == ["debug_toolbar"]
        assert scan.framework.type == "Django"

    def test_relative_scope_resolves_against_root(self, tmp_path, monkeypatch):
        project = tmp_path / "proj"
        write(project / "src" / "a.py", "import click\n")
        write(tmp_path / "elsewhere" / "src" / "b.py", "import rich\n")
        monkeypatch.chdir(tmp_path / "elsewhere")

        scan = scan_workspace(project, paths=["src"])

        assert scan.import_lines == ["import click"]

    def test_scope_outside_root_is_skipped(self, tmp_path):
        write(tmp_path / "proj" / "a.py", "import click\n")
        write(tmp_path / "other" / "b.py", "import rich\n")

        scan = scan_workspace(tmp_path / "proj", paths=[tmp_path / "other", "a.py"])

        assert scan.import_lines == ["import click"]

    def test_local_class_does_not_hide_same_named_package(self, tmp_path):
        write(tmp_path / "cache.py", "import redis\n\nclass Redis:\n    pass\n")

        scan = scan_workspace(tmp_path)
        candidates = CandidateExtractor(local_names=scan.local_names).extract(scan.import_lines)

        assert "Redis" in scan.local_names
        assert [c.raw_identifier for c in candidates] == ["redis"]
