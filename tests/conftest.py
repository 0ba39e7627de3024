import pytest

from sf_broker.auth.types import CredentialBundle

from helpers import Clock


@pytest.fixture
def client_credentials_bundle():
    return CredentialBundle(client_id="id1", client_secret="sec1")


@pytest.fixture
def password_bundle():
    return CredentialBundle(username="u", password="p", security_token="tok")


@pytest.fixture
def clock():
    return Clock()
