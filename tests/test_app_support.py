from __future__ import annotations

import asyncio
import json
import time

import jwt
import pytest
from fastapi import HTTPException, Request
from sqlmodel import select

from storefront import crud
from storefront.api import deps
from storefront.core.config import Settings, parse_list, settings
from storefront.enums import UserRole


def test_http_exception_handler_dict_branch():
    from storefront import main as app_main

    exc = HTTPException(status_code=418, detail={"code": 418001, "message": "teapot"})
    resp = asyncio.run(app_main.http_error_handler(None, exc))  # type: ignore[arg-type]
    assert resp.status_code == 418
    body = json.loads(resp.body)
    assert body == {"success": False, "code": 418001, "message": "teapot", "data": None}


def test_unhandled_error_handler_returns_envelope():
    from storefront import main as app_main

    request = Request({"type": "http", "method": "GET", "path": "/boom", "headers": [], "query_string": b""})
    resp = asyncio.run(app_main.unhandled_error_handler(request, RuntimeError("boom")))
    assert resp.status_code == 500
    assert json.loads(resp.body)["code"] == 500000


def test_deps_invalid_token_paths(client):
    url = "/api/v1/orders"

    # Valid JWT but sub is not int
    token = jwt.encode({"sub": "abc", "exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    # Valid JWT but missing sub
    token = jwt.encode({"exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    # Valid JWT but user doesn't exist
    token = jwt.encode({"sub": "999999999", "exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["message"] == "User not found"


def test_get_db_generator_uses_engine_override(engine, monkeypatch):
    monkeypatch.setattr(deps, "engine", engine)
    gen = deps.get_db()
    session = next(gen)
    session.exec(select(1))
    gen.close()


def test_settings_parse_list():
    assert parse_list("1.2.3.4, 10.0.0.0/8,") == ["1.2.3.4", "10.0.0.0/8"]
    assert parse_list(["a"]) == ["a"]
    with pytest.raises(ValueError):
        parse_list(123)

    s = Settings(SEPAY_ALLOWED_IPS="103.255.238.0/24,10.1.1.1")
    assert s.sepay_allowed_ips == ["103.255.238.0/24", "10.1.1.1"]


def test_settings_reject_default_secrets_outside_local():
    with pytest.raises(ValueError):
        Settings(ENVIRONMENT="production", SECRET_KEY="changethis")
    with pytest.raises(ValueError):
        Settings(ENVIRONMENT="production", SEPAY_WEBHOOK_SECRET="changethis")


def test_prestart_and_seed_scripts(engine, db, monkeypatch):
    from storefront import backend_pre_start, initial_data

    # Point the scripts to the test engine so they can run without Postgres.
    monkeypatch.setattr(backend_pre_start, "engine", engine)
    monkeypatch.setattr(initial_data, "engine", engine)

    backend_pre_start.init(engine)
    backend_pre_start.main()

    initial_data.init()
    initial_data.main()

    admin = crud.get_user_by_email(session=db, email=settings.FIRST_ADMIN_EMAIL)
    assert admin is not None
    assert admin.role == UserRole.admin
