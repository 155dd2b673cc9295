"""Tests for the remote character service client."""

from unittest.mock import MagicMock

import pytest
import requests
from sqlalchemy import create_engine

from charsheet import db_engine
from charsheet.errors import AuthExpiredError, RemoteError, RemoteNotFoundError
from charsheet.models import AuthIdentity
from charsheet.orm_models import Base


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing."""
    test_engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    db_engine.set_engine(test_engine)
    yield test_engine
    db_engine.reset_engine()


def _response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.content = b"" if body is None else b"x"
    response.json.return_value = body
    response.text = str(body)
    return response


def _identity():
    return AuthIdentity(user_id="u1", username="jim", email="jim@example.com", token="secret")


def _client(http, identity=None):
    from charsheet.api_client import ApiClient, AuthSession

    return ApiClient(AuthSession(identity), base_url="http://api.test/api/", http=http)


CHARACTER_BODY = {
    "id": "r1",
    "userId": "u1",
    "name": "Elara",
    "data": "{}",
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-02T00:00:00Z",
}


class TestApiClient:

    def test_bearer_token_and_url(self):
        http = MagicMock()
        http.request.return_value = _response(200, [])
        client = _client(http, _identity())

        client.request("GET", "/characters")

        args, kwargs = http.request.call_args
        assert args == ("GET", "http://api.test/api/characters")
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    def test_no_token_when_logged_out(self):
        http = MagicMock()
        http.request.return_value = _response(200, [])

        _client(http).request("GET", "/characters")

        assert "Authorization" not in http.request.call_args.kwargs["headers"]

    def test_401_maps_to_auth_expired(self):
        http = MagicMock()
        http.request.return_value = _response(401, {"message": "expired"})

        with pytest.raises(AuthExpiredError) as exc:
            _client(http, _identity()).request("GET", "/characters")
        assert exc.value.retryable is False

    def test_404_maps_to_not_found(self):
        http = MagicMock()
        http.request.return_value = _response(404, {"message": "gone"})

        with pytest.raises(RemoteNotFoundError):
            _client(http).request("GET", "/characters/x")

    def test_server_error_is_retryable(self):
        http = MagicMock()
        http.request.return_value = _response(503, {"message": "down"})

        with pytest.raises(RemoteError) as exc:
            _client(http).request("GET", "/characters")
        assert exc.value.status_code == 503
        assert exc.value.retryable is True
        assert "down" in str(exc.value)

    def test_client_error_not_retryable(self):
        http = MagicMock()
        http.request.return_value = _response(400, {"message": "bad"})

        with pytest.raises(RemoteError) as exc:
            _client(http).request("POST", "/characters")
        assert exc.value.retryable is False

    def test_transport_failure(self):
        http = MagicMock()
        http.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(RemoteError) as exc:
            _client(http).request("GET", "/characters")
        assert exc.value.status_code is None

    def test_empty_body(self):
        http = MagicMock()
        http.request.return_value = _response(204)

        assert _client(http).request("DELETE", "/characters/r1") is None


class TestCharacterApi:

    def test_list(self):
        from charsheet.api_client import CharacterApi

        http = MagicMock()
        http.request.return_value = _response(200, [CHARACTER_BODY])

        characters = CharacterApi(_client(http, _identity())).list()

        assert len(characters) == 1
        assert characters[0].id == "r1"
        assert characters[0].user_id == "u1"
        assert characters[0].updated_at == "2024-01-02T00:00:00Z"

    def test_create_sends_name_and_data(self):
        from charsheet.api_client import CharacterApi

        http = MagicMock()
        http.request.return_value = _response(201, CHARACTER_BODY)

        created = CharacterApi(_client(http, _identity())).create("Elara", "{}")

        assert created.id == "r1"
        assert http.request.call_args.kwargs["json"] == {"name": "Elara", "data": "{}"}

    def test_update_only_sends_given_fields(self):
        from charsheet.api_client import CharacterApi

        http = MagicMock()
        http.request.return_value = _response(200, CHARACTER_BODY)

        CharacterApi(_client(http, _identity())).update("r1", data="{}")

        args, kwargs = http.request.call_args
        assert args == ("PUT", "http://api.test/api/characters/r1")
        assert kwargs["json"] == {"data": "{}"}

    def test_malformed_character(self):
        from charsheet.api_client import CharacterApi

        http = MagicMock()
        http.request.return_value = _response(200, {"name": "No id"})

        with pytest.raises(RemoteError):
            CharacterApi(_client(http, _identity())).get("r1")

    def test_delete(self):
        from charsheet.api_client import CharacterApi

        http = MagicMock()
        http.request.return_value = _response(204)

        CharacterApi(_client(http, _identity())).delete("r1")

        assert http.request.call_args.args == ("DELETE", "http://api.test/api/characters/r1")


class TestAuth:

    def test_login_caches_identity(self, temp_db):
        from charsheet.api_client import AuthApi, AuthSession
        from charsheet.database import get_identity

        http = MagicMock()
        http.request.return_value = _response(200, {
            "userId": "u1", "username": "jim", "email": "jim@example.com",
            "token": "tok", "expiresAt": "2030-01-01T00:00:00Z",
        })
        client = _client(http)

        identity = AuthApi(client).login("jim@example.com", "hunter2")

        assert identity.token == "tok"
        assert client.auth.is_authenticated
        assert get_identity() == identity
        assert AuthSession.restore().token == "tok"

    def test_register(self, temp_db):
        from charsheet.api_client import AuthApi

        http = MagicMock()
        http.request.return_value = _response(201, {
            "userId": "u2", "username": "amy", "email": "amy@example.com", "token": "t2",
        })

        identity = AuthApi(_client(http)).register("amy", "amy@example.com", "pw")

        assert identity.username == "amy"
        assert http.request.call_args.kwargs["json"]["username"] == "amy"

    def test_bad_credentials_cache_nothing(self, temp_db):
        from charsheet.api_client import AuthApi
        from charsheet.database import get_identity

        http = MagicMock()
        http.request.return_value = _response(401, {"message": "bad password"})

        with pytest.raises(AuthExpiredError):
            AuthApi(_client(http)).login("jim@example.com", "wrong")
        assert get_identity() is None

    def test_logout_clears_cache(self, temp_db):
        from charsheet.api_client import AuthSession
        from charsheet.database import get_identity

        session = AuthSession()
        session.login(_identity())
        session.logout()

        assert not session.is_authenticated
        assert get_identity() is None
