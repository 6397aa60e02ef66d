"""Tests for the resolution engine pipeline."""

from pathlib import Path

import pytest

from depure._extraction import scan_workspace
from depure._registry import PYPI_API_BASE, PyPIClient, RegistryCache
from depure.cancellation import CancellationToken
from depure.engine import NO_DEPENDENCIES_MESSAGE, ResolutionEngine, ResolutionStatus
from depure.exceptions import OracleError

from .fakes import FakeOracle, make_pypi_payload, make_response


class CancellingOracle(FakeOracle):
    """Cancels the run while the oracle is being consulted."""

    def __init__(self, token, dependencies):
        super().__init__(dependencies)
        self.token = token

    def resolve(self, request):
        self.token.cancel()
        return super().resolve(request)


@pytest.fixture
def registry(fake_registry):
    registry = fake_registry
    registry.add("beautifulsoup4", "4.12.3", requires=["soupsieve"], summary="Screen-scraping library")
    registry.add("soupsieve", "2.6")
    registry.add("pytest", "8.3.3", requires=["pluggy", "iniconfig"])
    registry.add("pluggy", "1.5.0")
    registry.add("iniconfig", "2.0.0")
    return registry


@pytest.fixture
def oracle():
    return FakeOracle(
        [
            {"name": "beautifulsoup4", "isDev": False},
            {"name": "pytest", "isDev": True},
        ]
    )


class TestResolutionEngine:
    def test_prod_and_dev_scenario(self, oracle, registry):
        engine = ResolutionEngine(oracle, client=registry)

        result = engine.run(["import os\nfrom bs4 import BeautifulSoup\nimport pytest\n"])

        assert result.status == ResolutionStatus.COMPLETED
        assert result.completed
        assert [c.raw_identifier for c in result.candidates] == ["bs4", "pytest"]
        assert oracle.requests[0].candidates == ["bs4", "pytest"]

        prod = result.dependencies.prod
        dev = result.dependencies.dev
        assert [(d.name, d.is_valid) for d in prod] == [("beautifulsoup4", True)]
        assert [(d.name, d.is_valid) for d in dev] == [("pytest", True)]
        assert prod[0].registry_version == "4.12.3"
        assert prod[0].description == "Screen-scraping library"

        assert result.graph.node_ids == ["beautifulsoup4", "pytest", "soupsieve", "pluggy", "iniconfig"]
        assert result.graph.level_of("soupsieve") == 1

    def test_oracle_called_once(self, oracle, registry):
        ResolutionEngine(oracle, client=registry).run(["import bs4", "import pytest", "import bs4.element"])
        assert len(oracle.requests) == 1

    def test_unconfirmed_suggestion_dropped(self, registry):
        oracle = FakeOracle([{"name": "beautifulsoup4"}, {"name": "definitely-not-on-pypi"}])

        result = ResolutionEngine(oracle, client=registry).run(["import bs4", "import mystery"])

        assert result.status == ResolutionStatus.COMPLETED
        assert [d.name for d in result.dependencies] == ["beautifulsoup4"]
        assert [c.name for c in result.classified] == ["beautifulsoup4", "definitely-not-on-pypi"]

    def test_no_external_candidates(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry).run(["import os\nimport json\nfrom . import views\n"])

        assert result.status == ResolutionStatus.NO_DEPENDENCIES
        assert result.message == NO_DEPENDENCIES_MESSAGE
        assert oracle.requests == []
        assert registry.calls == []

    def test_nothing_confirmed_is_no_dependencies(self, registry):
        oracle = FakeOracle([{"name": "ghost-package"}])

        result = ResolutionEngine(oracle, client=registry).run(["import ghost"])

        assert result.status == ResolutionStatus.NO_DEPENDENCIES
        assert len(result.dependencies) == 0

    def test_local_names_excluded(self, oracle, registry):
        ResolutionEngine(oracle, client=registry).run(
            ["import bs4\nimport my_utils\nfrom models import User\n"], local_names={"my_utils", "models"}
        )
        assert oracle.requests[0].candidates == ["bs4"]

    def test_extra_identifiers_and_context_forwarded(self, oracle, registry):
        ResolutionEngine(oracle, client=registry).run(
            ["import bs4"],
            extra_identifiers=["rest_framework"],
            file_tree="manage.py",
            framework_notes="Project type: Django",
        )
        request = oracle.requests[0]
        assert request.candidates == ["bs4", "rest_framework"]
        assert request.file_tree == "manage.py"
        assert request.framework_notes == "Project type: Django"

    def test_max_depth_zero(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry, max_depth=0).run(["import bs4\nimport pytest"])

        assert result.graph.node_ids == ["beautifulsoup4", "pytest"]
        assert result.graph.edges == []

    def test_pinned_versions(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry).run(
            ["import bs4\nimport pytest"], pinned_versions={"beautifulsoup4": "4.11.0"}
        )

        dep = result.dependencies.get("beautifulsoup4")
        assert dep.pinned_version == "4.11.0"
        assert dep.update_available is True
        assert result.dependencies.get("pytest").update_available is False

    def test_oracle_error_propagates(self, registry):
        oracle = FakeOracle(error=OracleError("Gemini Service Error: quota exceeded"))
        engine = ResolutionEngine(oracle, client=registry)

        with pytest.raises(OracleError, match="quota exceeded"):
            engine.run(["import bs4"])
        assert registry.calls == []

    def test_malformed_oracle_response_is_fatal(self, registry):
        class BadOracle(FakeOracle):
            def resolve(self, request):
                return '{"packages": []}'

        with pytest.raises(OracleError):
            ResolutionEngine(BadOracle(), client=registry).run(["import bs4"])

    def test_cancel_before_oracle(self, oracle, registry):
        token = CancellationToken()
        token.cancel()

        result = ResolutionEngine(oracle, client=registry).run(["import bs4"], cancel_token=token)

        assert result.status == ResolutionStatus.CANCELLED
        assert result.cancelled
        assert oracle.requests == []

    def test_cancel_after_oracle(self, registry):
        token = CancellationToken()
        oracle = CancellingOracle(token, [{"name": "beautifulsoup4"}])

        result = ResolutionEngine(oracle, client=registry).run(["import bs4"], cancel_token=token)

        assert result.status == ResolutionStatus.CANCELLED
        assert [c.name for c in result.classified] == ["beautifulsoup4"]
        assert registry.calls == []


class TestResolutionEngineWithPyPI:
    def test_registry_called_once_per_name(self, oracle, mock_session):
        payloads = {
            "beautifulsoup4": make_pypi_payload("beautifulsoup4", "4.12.3", requires_dist=["soupsieve>1.2"]),
            "soupsieve": make_pypi_payload("soupsieve", "2.6"),
            "pytest": make_pypi_payload("pytest", "8.3.3"),
        }

        def get(url, timeout=None):
            name = url[len(PYPI_API_BASE) + 1 : -len("/json")]
            if name in payloads:
                return make_response(200, payloads[name])
            return make_response(404, {})

        mock_session.get.side_effect = get
        client = PyPIClient(cache=RegistryCache(ttl=3600), session=mock_session)
        engine = ResolutionEngine(oracle, client=client, concurrency=1)

        first = engine.run(["import bs4\nimport pytest"])
        second = engine.run(["import bs4\nimport pytest"])

        assert first.completed and second.completed
        requested = [call.args[0] for call in mock_session.get.call_args_list]
        assert sorted(requested) == sorted(f"{PYPI_API_BASE}/{name}/json" for name in payloads)

    def test_default_client_uses_given_cache(self, oracle):
        cache = RegistryCache(ttl=10)
        engine = ResolutionEngine(oracle, cache=cache)
        assert isinstance(engine.client, PyPIClient)
        assert engine.client.cache is cache


class TestRunWorkspace:
    def test_scanned_project(self, tmp_path: Path, oracle, registry):
        (tmp_path / "app.py").write_text("from bs4 import BeautifulSoup\nimport helpers\n")
        (tmp_path / "helpers.py").write_text("import os\n")
        (tmp_path / "tests").mkdir()
        (tmp_path / "tests" / "test_app.py").write_text("import pytest\n")

        result = ResolutionEngine(oracle, client=registry).run_workspace(scan_workspace(tmp_path))

        assert result.completed
        assert oracle.requests[0].candidates == ["bs4", "pytest"]
        assert "tests/test_app.py" in oracle.requests[0].file_tree


class TestInspect:
    def test_single_package(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry).inspect("PyTest")

        assert result.completed
        assert [d.name for d in result.dependencies] == ["pytest"]
        assert result.graph.node_ids == ["pytest", "pluggy", "iniconfig"]
        assert oracle.requests == []

    def test_unknown_package(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry).inspect("nope")
        assert result.status == ResolutionStatus.NO_DEPENDENCIES
        assert "nope" in result.message

    def test_depth_zero(self, oracle, registry):
        result = ResolutionEngine(oracle, client=registry).inspect("pytest", max_depth=0)
        assert result.graph.node_ids == ["pytest"]
