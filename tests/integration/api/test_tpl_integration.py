import os

import pytest

from order_tracking_status.api.errors import UpstreamLookupError
from order_tracking_status.api.tpl import TplAuth, TplClient, TplConfig


def _env_creds():
    base_url = os.environ.get("TPL_BASE_URL")
    api_key = os.environ.get("TPL_API_KEY")
    token = os.environ.get("TPL_TOKEN")
    email = os.environ.get("TPL_EMAIL")
    if not (base_url and api_key and token and email):
        pytest.skip("TPL credentials not set in environment; skipping integration tests")
    return TplAuth(api_key=api_key, token=token, email=email), TplConfig(base_url=base_url)


def test_auth_returns_token_and_reuses_it():
    auth, cfg = _env_creds()
    client = TplClient(auth, cfg)
    token = client.authenticate()
    assert token and isinstance(token, str)
    assert client.authenticate() == token
    assert client.token_cache.state == "valid"


def test_order_detail_for_known_number():
    auth, cfg = _env_creds()
    number = os.environ.get("TPL_SAMPLE_ORDER_NUMBER")
    if not number:
        pytest.skip("TPL_SAMPLE_ORDER_NUMBER not set")
    detail = TplClient(auth, cfg).fetch_order_detail(number)
    assert detail.info is not None
    assert detail.info.number


def test_unknown_number_is_lookup_error():
    auth, cfg = _env_creds()
    with pytest.raises(UpstreamLookupError):
        TplClient(auth, cfg).fetch_order_detail("ENX-DOES-NOT-EXIST-0")
