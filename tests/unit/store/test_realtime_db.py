"""Unit tests for the realtime database client."""

from unittest.mock import MagicMock

import pytest
import requests

from office_tracker.common.exceptions import RecordStoreError
from office_tracker.store.realtime_db import RealtimeDatabaseClient


BASE_URL = "https://office-tracker-test-default-rtdb.firebaseio.com/"


def _response(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.request.return_value = _response(body=None)
    return session


@pytest.fixture
def client(session):
    return RealtimeDatabaseClient(BASE_URL, auth_token="db-secret", session=session)


class TestFetchUsers:
    """Test snapshot reads."""
    
    def test_reads_users_node(self, client, session):
        session.request.return_value = _response(body={"user_a": {"platform": "ios"}})
        
        users = client.fetch_users()
        
        assert users == {"user_a": {"platform": "ios"}}
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://office-tracker-test-default-rtdb.firebaseio.com/users.json"
        assert session.request.call_args.kwargs["params"] == {"auth": "db-secret"}
    
    def test_null_is_empty_snapshot(self, client):
        assert client.fetch_users() == {}
    
    def test_non_object_snapshot(self, client, session):
        session.request.return_value = _response(body=["not", "a", "map"])
        
        with pytest.raises(RecordStoreError):
            client.fetch_users()
    
    def test_http_error(self, client, session):
        session.request.return_value = _response(status_code=401, text="Permission denied")
        
        with pytest.raises(RecordStoreError) as exc_info:
            client.fetch_users()
        
        assert exc_info.value.details["status_code"] == 401
    
    def test_network_error(self, client, session):
        session.request.side_effect = requests.Timeout("read timed out")
        
        with pytest.raises(RecordStoreError):
            client.fetch_users()
    
    def test_body_not_json(self, client, session):
        session.request.return_value = _response(body=ValueError("bad json"))
        
        with pytest.raises(RecordStoreError):
            client.fetch_users()


class TestUserAccess:
    
    def test_fetch_user_quotes_segments(self, client, session):
        session.request.return_value = _response(body={"platform": "ios"})
        
        client.fetch_user("Galaxy S24_1768800000000_k2j4")
        
        url = session.request.call_args.args[1]
        assert url.endswith("/users/Galaxy%20S24_1768800000000_k2j4.json")
    
    def test_missing_user_is_none(self, client):
        assert client.fetch_user("nobody") is None
    
    def test_no_auth_param_without_token(self, session):
        client = RealtimeDatabaseClient(BASE_URL, session=session)
        
        client.get("users")
        
        assert session.request.call_args.kwargs["params"] == {}


class TestUpdateFields:
    
    def test_patch_body(self, client, session):
        session.request.return_value = _response(body={"fcmToken": None})
        
        client.update_fields("users/user_a", {"fcmToken": None})
        
        method, url = session.request.call_args.args
        assert method == "PATCH"
        assert url.endswith("/users/user_a.json")
        assert session.request.call_args.kwargs["json"] == {"fcmToken": None}
    
    def test_empty_fields_rejected(self, client, session):
        with pytest.raises(ValueError):
            client.update_fields("users/user_a", {})
        session.request.assert_not_called()
    
    def test_base_url_required(self):
        with pytest.raises(ValueError):
            RealtimeDatabaseClient("")
