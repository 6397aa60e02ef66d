"""Tests for the PyPI registry client."""

from unittest.mock import Mock

import pytest
import requests

from depure._registry import PYPI_API_BASE, PyPIClient, RegistryCache, parse_requirement_name
from depure.cancellation import CancellationToken

from .fakes import make_pypi_payload, make_response


@pytest.fixture
def client(mock_session):
    return PyPIClient(cache=RegistryCache(ttl=3600), session=mock_session)


def route(payloads):
    """Build a session.get side effect serving payloads by package name."""

    def get(url, timeout=None):
        name = url[len(PYPI_API_BASE) + 1 : -len("/json")]
        if name not in payloads:
            return make_response(404, {"message": "Not Found"})
        return make_response(200, payloads[name])

    return get


class TestParseRequirementName:
    @pytest.mark.parametrize(
        "requirement,expected",
        [
            ("urllib3<3,>=1.21.1", "urllib3"),
            ('PySocks!=1.5.7,>=1.5.6; extra == "socks"', "pysocks"),
            ("charset_normalizer[unicode_backport] (>=2,<4)", "charset_normalizer"),
            ("idna", "idna"),
            ("certifi>=2017.4.17", "certifi"),
            ("typing-extensions~=4.0", "typing-extensions"),
        ],
    )
    def test_bare_names(self, requirement, expected):
        assert parse_requirement_name(requirement) == expected

    @pytest.mark.parametrize("requirement", ["", "   ", None])
    def test_empty(self, requirement):
        assert parse_requirement_name(requirement) is None


class TestPyPIClientFetch:
    def test_successful_lookup(self, client, mock_session):
        mock_session.get.return_value = make_response(
            200,
            make_pypi_payload(
                "requests",
                version="2.31.0",
                releases=["2.30.0", "2.31.0", "2.32.0rc1"],
                requires_dist=["urllib3<3,>=1.21.1", "idna<4,>=2.5", 'PySocks!=1.5.7; extra == "socks"'],
                summary="Python HTTP for Humans.",
                license="Apache-2.0",
                home_page="https://requests.readthedocs.io",
            ),
        )

        record = client.lookup("Requests")

        mock_session.get.assert_called_once_with(f"{PYPI_API_BASE}/requests/json", timeout=7)
        assert record.canonical_name == "requests"
        assert record.latest_version == "2.31.0"
        assert record.requirement_names == ("urllib3", "idna", "pysocks")
        assert record.summary == "Python HTTP for Humans."
        assert record.license == "Apache-2.0"
        assert record.homepage == "https://requests.readthedocs.io"
        assert record.display_name == "requests"

    def test_underscore_name_normalized_for_url(self, client, mock_session):
        mock_session.get.return_value = make_response(200, make_pypi_payload("typing_extensions", "4.12.2"))
        client.lookup("Typing_Extensions")
        mock_session.get.assert_called_once_with(f"{PYPI_API_BASE}/typing-extensions/json", timeout=7)

    def test_latest_skips_all_yanked_release(self, client, mock_session):
        payload = make_pypi_payload("pkg", version="1.0.0", releases=["1.0.0", "1.1.0"])
        payload["releases"]["1.1.0"] = [{"filename": "pkg-1.1.0.tar.gz", "yanked": True}]
        mock_session.get.return_value = make_response(200, payload)

        assert client.lookup("pkg").latest_version == "1.0.0"

    def test_falls_back_to_info_version(self, client, mock_session):
        mock_session.get.return_value = make_response(
            200, make_pypi_payload("certifi", version="2024.8.30", releases=["2024.8.30", "2024.7.4.1"])
        )
        assert client.lookup("certifi").latest_version == "2024.8.30"

        # No release key is a strict X.Y.Z version
        payload = make_pypi_payload("pytz", version="2024.1", releases=["2024.1", "2023.4"])
        mock_session.get.return_value = make_response(200, payload)
        assert client.lookup("pytz").latest_version == "2024.1"

    def test_homepage_from_project_urls(self, client, mock_session):
        payload = make_pypi_payload("click", "8.1.7")
        payload["info"]["project_urls"] = {"Source Code": "https://github.com/pallets/click"}
        mock_session.get.return_value = make_response(200, payload)

        assert client.lookup("click").homepage == "https://github.com/pallets/click"

    def test_not_found_is_cached(self, client, mock_session):
        mock_session.get.return_value = make_response(404, {"message": "Not Found"})

        assert client.lookup("no-such-package") is None
        assert client.lookup("no-such-package") is None
        assert mock_session.get.call_count == 1

    @pytest.mark.parametrize("status_code", [500, 503, 429])
    def test_server_errors_return_none(self, client, mock_session, status_code):
        mock_session.get.return_value = make_response(status_code, {})
        assert client.lookup("requests") is None

    def test_timeout_returns_none(self, client, mock_session):
        mock_session.get.side_effect = requests.exceptions.Timeout("timed out")
        assert client.lookup("requests") is None

    def test_connection_error_returns_none(self, client, mock_session):
        mock_session.get.side_effect = requests.exceptions.ConnectionError("down")
        assert client.lookup("requests") is None
        assert mock_session.get.call_count == 1

    def test_invalid_json_returns_none(self, client, mock_session):
        mock_session.get.return_value = make_response(200, ValueError("Expecting value"))
        assert client.lookup("requests") is None

    def test_missing_info_returns_none(self, client, mock_session):
        mock_session.get.return_value = make_response(200, {"releases": {}})
        assert client.lookup("requests") is None

    def test_empty_name(self, client, mock_session):
        assert client.lookup("  ") is None
        mock_session.get.assert_not_called()

    def test_cache_shared_between_clients(self, mock_session):
        cache = RegistryCache(ttl=3600)
        mock_session.get.return_value = make_response(200, make_pypi_payload("flask", "3.0.3"))

        PyPIClient(cache=cache, session=mock_session).lookup("flask")
        PyPIClient(cache=cache, session=mock_session).lookup("flask")

        assert mock_session.get.call_count == 1

    def test_custom_base_url(self, mock_session):
        mock_session.get.return_value = make_response(404, {})
        client = PyPIClient(session=mock_session, base_url="https://mirror.example/pypi/")
        client.lookup("flask")
        mock_session.get.assert_called_once_with("https://mirror.example/pypi/flask/json", timeout=7)

    def test_close_leaves_injected_session_open(self, mock_session):
        with PyPIClient(session=mock_session):
            pass
        mock_session.close.assert_not_called()


class TestLookupMany:
    def test_results_in_input_order(self, client, mock_session):
        mock_session.get.side_effect = route(
            {
                "flask": make_pypi_payload("flask", "3.0.3"),
                "click": make_pypi_payload("click", "8.1.7"),
                "rich": make_pypi_payload("rich", "13.9.4"),
            }
        )

        results = client.lookup_many(["rich", "Flask", "missing", "click", "rich"], concurrency=4)

        assert list(results) == ["rich", "flask", "missing", "click"]
        assert results["missing"] is None
        assert results["flask"].latest_version == "3.0.3"

    def test_serial_when_concurrency_is_one(self, client, mock_session):
        mock_session.get.side_effect = route({"a": make_pypi_payload("a"), "b": make_pypi_payload("b")})
        results = client.lookup_many(["a", "b"], concurrency=1)
        assert [r.canonical_name for r in results.values()] == ["a", "b"]
        assert mock_session.get.call_count == 2

    def test_cancelled_token_skips_lookups(self, client, mock_session):
        token = CancellationToken()
        token.cancel()

        assert client.lookup_many(["a", "b"], cancel_token=token) == {}
        mock_session.get.assert_not_called()

    def test_empty_input(self, client):
        assert client.lookup_many([]) == {}


class TestSessionHandling:
    def test_default_session_created_lazily(self):
        client = PyPIClient()
        session = client._get_session()
        try:
            assert isinstance(session, requests.Session)
            assert session.headers["User-Agent"].startswith("depure/")
        finally:
            client.close()

    def test_registry_name(self):
        session = Mock(spec=requests.Session)
        assert PyPIClient(session=session).name == "pypi.org"
