"""Tests for sanitizers, credential checks and session tokens."""

from __future__ import annotations

import pytest

from cloudsnap.security import (
    SessionState,
    api_key_matches,
    extract_api_key,
    issue_session_token,
    pin_matches,
    sanitize_custom_filename,
    sanitize_folder,
    validate_session_token,
)

KEY = b"signing-key"
NOW = 1_700_000_000


# ------------------------------------------------------------------
# Sanitizers
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("pics", "pics"),
        ("/pics/", "pics"),
        ("///nested/dir//", "nested/dir"),
        ("my pics", "my-pics"),
        ("a.b/c?d", "a-b/c-d"),
        ("../etc", "--/etc"),
        ("", ""),
    ],
)
def test_sanitize_folder(raw, expected):
    assert sanitize_folder(raw) == expected


@pytest.mark.parametrize("raw", ["pics", "/x y/", "ünï/cødé", "a/../b", "//"])
def test_sanitize_folder_is_idempotent(raw):
    once = sanitize_folder(raw)
    assert sanitize_folder(once) == once


def test_sanitize_custom_filename():
    assert sanitize_custom_filename("holiday photo.v2") == "holiday-photo-v2"
    assert sanitize_custom_filename("ok_name-1") == "ok_name-1"
    assert sanitize_custom_filename("a/b") == "a-b"


# ------------------------------------------------------------------
# Credentials
# ------------------------------------------------------------------


def test_extract_api_key_prefers_x_api_key():
    headers = {"x-api-key": "one", "authorization": "Bearer two"}
    assert extract_api_key(headers) == "one"


def test_extract_api_key_from_bearer():
    assert extract_api_key({"authorization": "Bearer two"}) == "two"


def test_extract_api_key_ignores_other_schemes():
    assert extract_api_key({"authorization": "Basic dXNlcg=="}) is None
    assert extract_api_key({}) is None


def test_api_key_matches_requires_configured_key():
    assert api_key_matches("k", "k")
    assert not api_key_matches("k", None)
    assert not api_key_matches(None, "k")
    assert not api_key_matches("", "")
    assert not api_key_matches("K", "k")


def test_pin_matches_exact_string():
    assert pin_matches("1234", "1234")
    assert not pin_matches("1234 ", "1234")
    assert not pin_matches(None, "1234")
    assert not pin_matches("1234", None)


# ------------------------------------------------------------------
# Session tokens
# ------------------------------------------------------------------


def test_fresh_token_is_valid():
    token = issue_session_token(KEY, now=NOW)
    assert validate_session_token(token, KEY, now=NOW + 10) is SessionState.VALID


def test_token_expires_after_max_age():
    token = issue_session_token(KEY, now=NOW)
    assert validate_session_token(token, KEY, now=NOW + 86400) is SessionState.VALID
    assert validate_session_token(token, KEY, now=NOW + 86401) is SessionState.EXPIRED


def test_token_signed_with_other_key_is_invalid():
    token = issue_session_token(b"other", now=NOW)
    assert validate_session_token(token, KEY, now=NOW) is SessionState.INVALID


def test_tampered_timestamp_is_invalid():
    token = issue_session_token(KEY, now=NOW)
    _, signature = token.split(".")
    forged = f"{NOW + 3600}.{signature}"
    assert validate_session_token(forged, KEY, now=NOW + 3600) is SessionState.INVALID


@pytest.mark.parametrize("token", [None, "", "true", "abc.def", "12345", "1.\u00e9"])
def test_malformed_tokens_are_invalid(token):
    assert validate_session_token(token, KEY, now=NOW) is SessionState.INVALID


def test_no_key_means_no_valid_token():
    token = issue_session_token(KEY, now=NOW)
    assert validate_session_token(token, None, now=NOW) is SessionState.INVALID


def test_token_from_the_future_is_invalid():
    token = issue_session_token(KEY, now=NOW + 3600)
    assert validate_session_token(token, KEY, now=NOW) is SessionState.INVALID
