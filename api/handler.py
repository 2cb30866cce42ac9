"""Serverless JSON handler exposing the quadratic voting operations."""

import json
import logging
import sys
from pathlib import Path

# Add the project root to the path so we can import qvote
sys.path.insert(0, str(Path(__file__).parent.parent))

from qvote.config import Settings
from qvote.errors import (
    AlreadyRegistered,
    InsufficientCredits,
    InvalidParameter,
    InvalidSession,
    ProposalNotFound,
    QuadraticVotingError,
    Unauthorized,
)
from qvote.identity import Caller
from qvote.service import QuadraticVoting

LOGGER = logging.getLogger(__name__)

CALLER_HEADER = "x-caller-address"

STATUS_BY_ERROR: dict[type[QuadraticVotingError], int] = {
    Unauthorized: 403,
    InvalidSession: 404,
    ProposalNotFound: 404,
    AlreadyRegistered: 409,
    InsufficientCredits: 409,
}

_settings: Settings | None = None
_service: QuadraticVoting | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def get_service() -> QuadraticVoting:
    """Return the ledger this handler serves, creating it on first use."""
    global _service
    if _service is None:
        settings = get_settings()
        logging.getLogger("qvote").setLevel(settings.log_level)
        _service = QuadraticVoting.from_settings(settings)
    return _service


def configure(service: QuadraticVoting | None = None, settings: Settings | None = None) -> None:
    """Bind the handler to a given ledger and settings (None resets to defaults)."""
    global _service, _settings
    _service = service
    _settings = settings


def handler(request):
    """Handle an RPC-style request.

    Accepts:
    - POST with JSON body: {"method": "vote", "params": {...}}
    - Caller identity in the X-Caller-Address header

    Returns JSON with the operation result under "result", or an error
    object {"error": kind, "message": ...}.
    """
    # Handle CORS preflight
    if request.method == "OPTIONS":
        return create_response(
            "",
            status=204,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": "POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type, X-Caller-Address",
            },
        )

    if request.method != "POST":
        return create_response(
            {"error": "Method not allowed. Use POST."},
            status=405,
        )

    caller = None
    try:
        content_type = request.headers.get("content-type", "")
        if "application/json" not in content_type:
            return create_response(
                {"error": f"Unsupported content type: {content_type}"},
                status=400,
            )

        data = json.loads(request.body.decode("utf-8"))
        if not isinstance(data, dict):
            return create_response({"error": "Request body must be a JSON object"}, status=400)
        method = data.get("method")
        operation = OPERATIONS.get(method)
        if operation is None:
            return create_response(
                {"error": f"Unknown method: {method}"},
                status=400,
            )

        params = data.get("params") or {}
        if not isinstance(params, dict):
            return create_response({"error": "params must be a JSON object"}, status=400)
        caller = _caller_from(request)
        result = operation(get_service(), caller, params)
        return create_response({"result": result})

    except QuadraticVotingError as e:
        status = status_for(e)
        if isinstance(e, Unauthorized) and caller is None:
            status = 401
        return create_response(e.to_dict(), status=status)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        return create_response(
            {"error": f"Invalid JSON: {e}"},
            status=400,
        )
    except Exception as e:
        LOGGER.exception("Unhandled error in handler")
        return create_response(
            {"error": f"Internal error: {e}"},
            status=500,
        )


def status_for(error: QuadraticVotingError) -> int:
    return STATUS_BY_ERROR.get(type(error), 400)


def _caller_from(request) -> Caller | None:
    address = request.headers.get(CALLER_HEADER, "").strip()
    if not address:
        return None
    return Caller(address=address, is_admin=get_settings().is_admin(address))


def _require_caller(caller: Caller | None) -> Caller:
    if caller is None:
        raise Unauthorized("Missing X-Caller-Address header")
    return caller


def _param(params: dict, name: str):
    try:
        return params[name]
    except KeyError:
        raise InvalidParameter(f"Missing parameter: {name}") from None


def _list_param(params: dict, name: str) -> list:
    value = _param(params, name)
    if not isinstance(value, list):
        raise InvalidParameter(f"Parameter {name} must be a list")
    return value


def _session_id(params: dict) -> int:
    value = _param(params, "sessionId")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameter("Parameter sessionId must be an integer")
    return value


def _register_voter(service: QuadraticVoting, caller, params: dict):
    voter = service.register_voter(_require_caller(caller), _param(params, "email"))
    return voter.to_dict()


def _create_session(service: QuadraticVoting, caller, params: dict):
    proposals = []
    for entry in _list_param(params, "proposals"):
        if isinstance(entry, dict):
            proposals.append((entry.get("title", ""), entry.get("description", "")))
        elif isinstance(entry, list) and len(entry) == 2:
            proposals.append((entry[0], entry[1]))
        else:
            raise InvalidParameter(f"Malformed proposal: {entry!r}")
    session_id = service.create_session(
        _require_caller(caller),
        _param(params, "name"),
        params.get("description", ""),
        _param(params, "creditsPerVoter"),
        _param(params, "durationSeconds"),
        proposals,
    )
    return {"sessionId": session_id}


def _vote(service: QuadraticVoting, caller, params: dict):
    receipt = service.vote(
        _require_caller(caller),
        _session_id(params),
        _list_param(params, "proposalIds"),
        _list_param(params, "voteCounts"),
    )
    return receipt.to_dict()


def _get_session_results(service: QuadraticVoting, caller, params: dict):
    return service.get_session_results(_session_id(params)).to_dict()


def _get_session_proposals(service: QuadraticVoting, caller, params: dict):
    return [p.to_dict() for p in service.get_session_proposals(_session_id(params))]


def _get_session(service: QuadraticVoting, caller, params: dict):
    return service.get_session(_session_id(params)).to_dict()


def _get_voter_session_credits(service: QuadraticVoting, caller, params: dict):
    voter = params.get("voter") or _require_caller(caller).address
    if not isinstance(voter, str):
        raise InvalidParameter("Parameter voter must be a string")
    return service.get_voter_session_credits(_session_id(params), voter).to_dict()


def _calculate_vote_cost(service: QuadraticVoting, caller, params: dict):
    cost = service.calculate_vote_cost(
        _param(params, "votesFor"), params.get("votesAgainst", 0)
    )
    return {"cost": cost}


OPERATIONS = {
    "registerVoter": _register_voter,
    "createSession": _create_session,
    "vote": _vote,
    "getSessionResults": _get_session_results,
    "getSessionProposals": _get_session_proposals,
    "getSession": _get_session,
    "getVoterSessionCredits": _get_voter_session_credits,
    "calculateVoteCost": _calculate_vote_cost,
}


def create_response(body, status: int = 200, headers: dict = None):
    """Create a response object for the serverless runtime."""
    response_headers = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
    }
    if headers:
        response_headers.update(headers)

    if isinstance(body, dict):
        body = json.dumps(body)

    # Return in format expected by the Python serverless runtime
    return {
        "statusCode": status,
        "headers": response_headers,
        "body": body,
    }
