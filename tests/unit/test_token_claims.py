"""
Unit Tests for bearer-token claim decoding

Run with: pytest tests/unit/test_token_claims.py -v
"""

import base64

import pytest

from utils.token_claims import decode_token_claims


def test_decodes_claims(make_token):
    token = make_token({"username": "carl", "role": "Admin"})
    assert decode_token_claims(token) == {"username": "carl", "role": "Admin"}


def test_unpadded_urlsafe_segment(make_token):
    # "?>" encodes to "Pz4" in url-safe base64: exercises padding restoration
    token = make_token({"note": "?>?>", "n": 1})
    assert decode_token_claims(token)["note"] == "?>?>"


def test_two_segments_is_enough():
    payload = base64.urlsafe_b64encode(b'{"email":"c@x.io"}').decode().rstrip("=")
    assert decode_token_claims(f"hdr.{payload}") == {"email": "c@x.io"}


@pytest.mark.parametrize(
    "token",
    [
        None,
        "",
        "opaque-token-without-dots",
        "a.%%%not-base64%%%.c",
        "a." + base64.urlsafe_b64encode(b"not json").decode() + ".c",
        "a." + base64.urlsafe_b64encode(b"\xff\xfe").decode() + ".c",
    ],
)
def test_malformed_yields_none(token):
    assert decode_token_claims(token) is None


def test_non_object_payload_yields_none():
    payload = base64.urlsafe_b64encode(b"[1,2,3]").decode().rstrip("=")
    assert decode_token_claims(f"h.{payload}.s") is None
