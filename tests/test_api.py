"""Tests for the JSON handler."""

import json
import logging
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from tests.conftest import make_service

from api import handler as api
from qvote.config import Settings

ADMIN_ADDRESS = "0xAdmin"


def make_request(method="POST", body=None, caller=None, content_type="application/json"):
    headers = {"content-type": content_type}
    if caller is not None:
        headers["x-caller-address"] = caller
    if isinstance(body, dict):
        body = json.dumps(body)
    return SimpleNamespace(method=method, headers=headers, body=(body or "").encode("utf-8"))


def call(method, params=None, caller=None):
    response = api.handler(make_request(body={"method": method, "params": params or {}}, caller=caller))
    return response["statusCode"], json.loads(response["body"])


@pytest.fixture(autouse=True)
def service():
    qv = make_service()
    api.configure(service=qv, settings=Settings(admin_addresses=[ADMIN_ADDRESS]))
    yield qv
    api.configure()


def create_session(credits=100, proposals=None):
    status, body = call("createSession", {
        "name": "Budget",
        "description": "Where the money goes",
        "creditsPerVoter": credits,
        "durationSeconds": 3600,
        "proposals": proposals or [
            {"title": "Parks", "description": "More trees"},
            ["Roads", "Fewer holes"],
        ],
    }, caller=ADMIN_ADDRESS)
    assert status == 200, body
    return body["result"]["sessionId"]


class TestTransport:
    def test_options_preflight(self):
        response = api.handler(make_request(method="OPTIONS"))
        assert response["statusCode"] == 204
        assert "X-Caller-Address" in response["headers"]["Access-Control-Allow-Headers"]

    def test_get_not_allowed(self):
        response = api.handler(make_request(method="GET"))
        assert response["statusCode"] == 405

    def test_wrong_content_type(self):
        response = api.handler(make_request(body="x", content_type="text/plain"))
        assert response["statusCode"] == 400
        assert "Unsupported content type" in json.loads(response["body"])["error"]

    def test_invalid_json(self):
        response = api.handler(make_request(body="{not json"))
        assert response["statusCode"] == 400
        assert "Invalid JSON" in json.loads(response["body"])["error"]

    def test_body_must_be_object(self):
        response = api.handler(make_request(body="[1, 2]"))
        assert response["statusCode"] == 400

    def test_unknown_method(self):
        status, body = call("selfDestruct")
        assert status == 400
        assert body["error"] == "Unknown method: selfDestruct"

    def test_cors_header_on_success(self):
        response = api.handler(make_request(body={"method": "calculateVoteCost", "params": {"votesFor": 2}}))
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"

    def test_unexpected_error_is_500(self, service):
        with patch.object(service, "get_session_results", side_effect=RuntimeError("boom")):
            status, body = call("getSessionResults", {"sessionId": 1})
        assert status == 500
        assert body["error"] == "Internal error: boom"


class TestOperations:
    def test_create_session_and_read_back(self):
        sid = create_session()
        assert sid == 1
        status, body = call("getSession", {"sessionId": sid})
        assert status == 200
        assert body["result"]["proposal_count"] == 2
        assert body["result"]["creator"] == ADMIN_ADDRESS
        assert body["result"]["active"] is True

    def test_admin_match_is_case_insensitive(self):
        status, _ = call("createSession", {
            "name": "S", "creditsPerVoter": 10, "durationSeconds": 60,
            "proposals": [["A", ""]],
        }, caller=ADMIN_ADDRESS.lower())
        assert status == 200

    def test_vote_flow(self):
        sid = create_session()
        status, body = call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        assert status == 200
        assert body["result"] == {"address": "0xalice", "email": "alice@example.com", "registered": True}

        status, body = call("vote", {
            "sessionId": sid, "proposalIds": [1, 2], "voteCounts": [[5, 0], 1],
        }, caller="0xalice")
        assert status == 200
        assert body["result"]["credits_delta"] == 26
        assert body["result"]["credits_remaining"] == 74

        status, body = call("getSessionProposals", {"sessionId": sid})
        assert [p["vote_count"] for p in body["result"]] == [5, 1]

        status, body = call("getSessionResults", {"sessionId": sid})
        assert body["result"]["winning_proposal_id"] == 1
        # JSON object keys are strings
        assert body["result"]["details"]["net_scores"] == {"1": 5, "2": 1}

    def test_voter_credits(self):
        sid = create_session(credits=30)
        call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        status, body = call("getVoterSessionCredits", {"sessionId": sid}, caller="0xalice")
        assert status == 200
        assert body["result"]["remaining"] == 30

        status, body = call("getVoterSessionCredits", {"sessionId": sid, "voter": "0xalice"})
        assert body["result"]["total"] == 30

    def test_calculate_vote_cost(self):
        status, body = call("calculateVoteCost", {"votesFor": 4, "votesAgainst": 1})
        assert status == 200
        assert body["result"] == {"cost": 17}


class TestErrors:
    def test_missing_caller_is_401(self):
        status, body = call("registerVoter", {"email": "x@example.com"})
        assert status == 401
        assert body["error"] == "Unauthorized"

    def test_non_admin_is_403(self, service):
        status, body = call("createSession", {
            "name": "S", "creditsPerVoter": 10, "durationSeconds": 60,
            "proposals": [["A", ""]],
        }, caller="0xalice")
        assert status == 403
        assert body["error"] == "Unauthorized"
        assert service.sessions.all() == []

    def test_unknown_session_is_404(self):
        status, body = call("getSessionResults", {"sessionId": 9})
        assert status == 404
        assert body["error"] == "InvalidSession"

    def test_insufficient_credits_is_409(self):
        sid = create_session(credits=10)
        call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        status, body = call("vote", {
            "sessionId": sid, "proposalIds": [1], "voteCounts": [4],
        }, caller="0xalice")
        assert status == 409
        assert body["error"] == "InsufficientCredits"

    def test_already_registered_is_409(self):
        call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        status, body = call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        assert status == 409
        assert body["error"] == "AlreadyRegistered"

    def test_bad_batch_is_400(self):
        sid = create_session()
        call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        status, body = call("vote", {
            "sessionId": sid, "proposalIds": [1, 2], "voteCounts": [1],
        }, caller="0xalice")
        assert status == 400
        assert body["error"] == "InvalidVoteCount"

    def test_missing_parameter(self):
        status, body = call("getSession", {})
        assert status == 400
        assert body == {"error": "InvalidParameter", "message": "Missing parameter: sessionId"}

    def test_malformed_proposal(self):
        status, body = call("createSession", {
            "name": "S", "creditsPerVoter": 10, "durationSeconds": 60,
            "proposals": ["just a string"],
        }, caller=ADMIN_ADDRESS)
        assert status == 400
        assert body["error"] == "InvalidParameter"


class TestServiceBinding:
    def test_lazy_service_from_settings(self):
        api.configure(settings=Settings(cost_rule="exclusive-direction", log_level="debug"))
        service = api.get_service()
        assert service is api.get_service()
        assert service.engine.cost_rule.name == "exclusive-direction"
        assert logging.getLogger("qvote").level == logging.DEBUG

    def test_configure_resets(self, service):
        assert api.get_service() is service
        api.configure()
        assert api.get_service() is not service


class TestMalformedInput:
    @pytest.mark.parametrize("params", [["x"], "x", 5])
    def test_params_must_be_object(self, params):
        response = api.handler(make_request(
            body={"method": "registerVoter", "params": params}, caller="0xalice"
        ))
        assert response["statusCode"] == 400
        assert json.loads(response["body"])["error"] == "params must be a JSON object"

    def test_body_not_utf8(self):
        response = api.handler(SimpleNamespace(
            method="POST", headers={"content-type": "application/json"}, body=b"\xff\xfe"
        ))
        assert response["statusCode"] == 400
        assert "Invalid JSON" in json.loads(response["body"])["error"]

    @pytest.mark.parametrize("session_id", ["1", [1], None, True])
    def test_session_id_must_be_integer(self, session_id):
        status, body = call("getSession", {"sessionId": session_id})
        assert status == 400
        assert body["error"] == "InvalidParameter"

    @pytest.mark.parametrize("field", ["proposalIds", "voteCounts"])
    def test_vote_lists_must_be_lists(self, field):
        sid = create_session()
        call("registerVoter", {"email": "alice@example.com"}, caller="0xalice")
        params = {"sessionId": sid, "proposalIds": [1], "voteCounts": [1]}
        params[field] = 1
        status, body = call("vote", params, caller="0xalice")
        assert status == 400
        assert body["message"] == f"Parameter {field} must be a list"

    def test_proposals_must_be_list(self):
        status, body = call("createSession", {
            "name": "S", "creditsPerVoter": 10, "durationSeconds": 60, "proposals": 3,
        }, caller=ADMIN_ADDRESS)
        assert status == 400
        assert body["error"] == "InvalidParameter"

    def test_voter_must_be_string(self):
        sid = create_session()
        status, body = call("getVoterSessionCredits", {"sessionId": sid, "voter": 12})
        assert status == 400
        assert body["error"] == "InvalidParameter"
