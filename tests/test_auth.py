import asyncio

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from storefront.auth import CurrentUser, get_current_user, get_optional_user, is_admin_email, require_admin

from .conftest import ADMIN_EMAIL, USER_EMAIL, USER_ID, make_token


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def test_current_user_from_token():
    user = asyncio.run(get_current_user(_credentials(make_token(USER_ID, USER_EMAIL.upper()))))
    assert user == CurrentUser(id=USER_ID, email=USER_EMAIL)


def test_expired_token():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(get_current_user(_credentials(make_token(USER_ID, USER_EMAIL, expires_in=-60))))
    assert exc.value.status_code == 401
    assert exc.value.detail == "Token has expired"


def test_garbage_token():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(get_current_user(_credentials("not-a-jwt")))
    assert exc.value.status_code == 401


def test_optional_user():
    assert asyncio.run(get_optional_user(None)) is None
    user = asyncio.run(get_optional_user(_credentials(make_token(USER_ID, USER_EMAIL))))
    assert user.id == USER_ID


def test_admin_check():
    assert is_admin_email(ADMIN_EMAIL.upper())
    assert not is_admin_email(None)

    admin = CurrentUser(id="a", email=ADMIN_EMAIL)
    assert asyncio.run(require_admin(admin)) is admin

    with pytest.raises(HTTPException) as exc:
        asyncio.run(require_admin(CurrentUser(id="u", email=USER_EMAIL)))
    assert exc.value.status_code == 403


def test_invalid_bearer_header_is_unauthorized(client):
    response = client.get("/api/user-subscriptions", headers={"Authorization": "Bearer broken"})
    assert response.status_code == 401
