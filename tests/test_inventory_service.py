from __future__ import annotations

import base64
import logging

import pytest
from sqlmodel import select

from storefront import crud
from storefront.core.config import Settings
from storefront.core.security import decrypt_text, encrypt_text
from storefront.models import InventoryUnit
from storefront.services.inventory_service import (
    Credential,
    add_credentials,
    decrypt_credential,
    encrypt_credential,
    parse_credentials,
)

OTHER_KEY = "11" * 32


def test_encrypt_text_round_trip_uses_fresh_nonce():
    first = encrypt_text("alice@example.com:secret")
    second = encrypt_text("alice@example.com:secret")

    assert first != second
    assert "alice" not in first
    assert decrypt_text(first) == decrypt_text(second) == "alice@example.com:secret"


def test_decrypt_text_rejects_wrong_key_and_tampering():
    token = encrypt_text("hello")
    with pytest.raises(ValueError):
        decrypt_text(token, key=OTHER_KEY)

    raw = bytearray(base64.b64decode(token))
    raw[-1] ^= 0x01
    with pytest.raises(ValueError):
        decrypt_text(base64.b64encode(bytes(raw)).decode())

    with pytest.raises(ValueError):
        decrypt_text("not base64!")
    with pytest.raises(ValueError):
        decrypt_text(base64.b64encode(b"short").decode())


def test_encryption_key_must_be_32_bytes_of_hex():
    assert Settings(ENCRYPTION_KEY=OTHER_KEY).ENCRYPTION_KEY == OTHER_KEY
    with pytest.raises(ValueError):
        Settings(ENCRYPTION_KEY="abcd")
    with pytest.raises(ValueError):
        Settings(ENCRYPTION_KEY="zz" * 32)


def test_credential_round_trip():
    credential = Credential(email="bob@example.com", password="p@ss:word?")
    token = encrypt_credential(credential)
    assert decrypt_credential(token) == credential


def test_decrypt_credential_requires_both_fields():
    with pytest.raises(ValueError):
        decrypt_credential(encrypt_text('{"email": "a@b.co"}'))
    with pytest.raises(ValueError):
        decrypt_credential(encrypt_text('["a@b.co", "pw"]'))
    with pytest.raises(ValueError):
        decrypt_credential(encrypt_text("plain text"))


def test_parse_credentials_skips_blank_lines_and_trims():
    creds = parse_credentials([" a@b.co : pw1 ", "", "c@d.vn:pw2"])
    assert creds == [Credential("a@b.co", "pw1"), Credential("c@d.vn", "pw2")]


def test_parse_credentials_collects_every_error():
    with pytest.raises(ValueError) as exc:
        parse_credentials(["ok@example.com:pw", "no-colon", "bad-email:pw", "x@y.z:", "a:b:c"])

    message = str(exc.value)
    assert 'Line 2: Invalid format. Expected "email:password"' in message
    assert "Line 3: Invalid email format" in message
    assert "Line 4: Password cannot be empty" in message
    assert "Line 5: Invalid format" in message
    assert "Line 1" not in message


def test_parse_credentials_requires_at_least_one():
    with pytest.raises(ValueError):
        parse_credentials(["", "   "])


def test_add_credentials_encrypts_at_rest(db, make_variant, logger):
    variant = make_variant()

    added, duplicates = add_credentials(
        session=db,
        variant_id=variant.id,
        credentials=[Credential("a@b.co", "pw1")],
        logger=logger,
    )

    assert (added, duplicates) == (1, 0)
    payload = db.exec(select(InventoryUnit.payload).where(InventoryUnit.variant_id == variant.id)).one()
    assert "a@b.co" not in payload
    assert decrypt_credential(payload) == Credential("a@b.co", "pw1")


def test_add_credentials_skips_existing_and_batch_duplicates(db, make_variant, logger):
    variant = make_variant(units=1)
    existing = decrypt_credential(crud.list_unit_payloads(session=db, variant_id=variant.id)[0])

    added, duplicates = add_credentials(
        session=db,
        variant_id=variant.id,
        credentials=[
            existing,
            Credential("new@b.co", "pw"),
            Credential("new@b.co", "pw"),
            Credential("new@b.co", "other"),
        ],
        logger=logger,
    )

    assert (added, duplicates) == (2, 2)
    assert crud.count_available_units(session=db, variant_id=variant.id) == 3


def test_duplicates_are_per_variant(db, make_variant, logger):
    first = make_variant()
    second = make_variant()
    credential = Credential("shared@b.co", "pw")

    for variant in (first, second):
        added, _ = add_credentials(
            session=db, variant_id=variant.id, credentials=[credential], logger=logger
        )
        assert added == 1


def test_undecryptable_units_are_skipped(db, make_variant, logger, caplog):
    variant = make_variant()
    crud.add_inventory_units(
        session=db,
        variant_id=variant.id,
        payloads=[encrypt_text('{"email": "a@b.co", "password": "pw"}', key=OTHER_KEY)],
    )

    with caplog.at_level(logging.WARNING, logger="storefront.tests"):
        added, duplicates = add_credentials(
            session=db,
            variant_id=variant.id,
            credentials=[Credential("a@b.co", "pw")],
            logger=logger,
        )

    assert (added, duplicates) == (1, 0)
    assert "Skipping undecryptable unit" in caplog.text
