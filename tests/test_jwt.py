"""Bearer token validation"""
import jwt
import pytest

from helpdesk.domain.enums import Role
from helpdesk.domain.errors import AuthenticationError
from helpdesk.repositories.user_repo import UserRepository
from helpdesk.utils.jwt import JWTValidator
from helpdesk.utils.time import utc_now
from tests.conftest import JWT_SECRET, make_token


@pytest.fixture
def validator(db, users):
    return JWTValidator(UserRepository(db), secret=JWT_SECRET, algorithm="HS256")


def test_valid_token_resolves_stored_role(validator):
    actor = validator.get_actor_context(f"Bearer {make_token('USR-agent')}")

    assert actor.user_id == "USR-agent"
    assert actor.role == Role.AGENT


def test_role_claim_in_token_is_ignored(validator):
    token = jwt.encode({"sub": "USR-employee", "role": "admin"}, JWT_SECRET, algorithm="HS256")

    assert validator.get_actor_context(token).role == Role.EMPLOYEE


@pytest.mark.parametrize("token, message", [
    ("", "Token is missing"),
    ("Bearer not-a-jwt", "Invalid token"),
    (make_token("USR-agent", secret="someone-elses-secret"), "Invalid token"),
    (make_token("USR-agent", hours=-1), "Token has expired"),
    (jwt.encode({"iat": utc_now()}, JWT_SECRET, algorithm="HS256"), "Unable to determine user from token"),
    (make_token("USR-nobody"), "User not found"),
    (make_token("USR-inactive"), "User is inactive"),
])
def test_rejected_tokens(validator, token, message):
    with pytest.raises(AuthenticationError) as exc_info:
        validator.get_actor_context(token)

    assert exc_info.value.message == message
    assert exc_info.value.http_status == 401
