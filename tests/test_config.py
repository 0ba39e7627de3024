from datetime import timedelta

from sf_broker.auth.types import CredentialBundle
from sf_broker.config import BrokerSettings, bundle_from_env, bundle_from_mapping


def test_bundle_from_env():
    bundle = bundle_from_env(
        {
            "SALESFORCE_USERNAME": "user@example.com",
            "SALESFORCE_PASSWORD": "Secret1",
            "SALESFORCE_SECURITY_TOKEN": "ABC123",
            "SALESFORCE_LOGIN_URL": "https://test.salesforce.com",
            "UNRELATED": "value",
        }
    )
    assert bundle == CredentialBundle(
        username="user@example.com",
        password="Secret1",
        security_token="ABC123",
        login_url="https://test.salesforce.com",
    )


def test_bundle_from_env_empty_values_are_absent():
    bundle = bundle_from_env({"SALESFORCE_CLIENT_ID": "", "SALESFORCE_LOGIN_URL": ""})
    assert bundle.client_id is None
    assert bundle.login_url == "https://login.salesforce.com"


def test_bundle_from_env_reads_os_environ(monkeypatch):
    monkeypatch.setenv("SALESFORCE_ACCESS_TOKEN", "AT")
    monkeypatch.setenv("SALESFORCE_INSTANCE_URL", "https://org.my.salesforce.com")
    bundle = bundle_from_env()
    assert bundle.access_token == "AT"
    assert bundle.instance_url == "https://org.my.salesforce.com"


def test_bundle_from_mapping():
    bundle = bundle_from_mapping(
        {
            "clientId": "id1",
            "clientSecret": "sec1",
            "refreshToken": "rt",
            "instanceUrl": "https://org.my.salesforce.com",
            "somethingElse": True,
        }
    )
    assert bundle == CredentialBundle(
        client_id="id1",
        client_secret="sec1",
        refresh_token="rt",
        instance_url="https://org.my.salesforce.com",
    )


def test_settings_defaults():
    settings = BrokerSettings.from_env({})
    assert settings == BrokerSettings()
    assert settings.api_version == 63.0
    assert settings.timeout == 30.0
    assert settings.session_lifetime is None
    assert settings.token_cache is None


def test_settings_from_env():
    settings = BrokerSettings.from_env(
        {
            "SALESFORCE_API_VERSION": "59.0",
            "SALESFORCE_TIMEOUT": "10",
            "SALESFORCE_SESSION_LIFETIME": "7200",
            "SALESFORCE_TOKEN_CACHE": "~/.sf-broker/tokens.json",
        }
    )
    assert settings.api_version == 59.0
    assert settings.timeout == 10.0
    assert settings.session_lifetime == timedelta(hours=2)
    assert settings.token_cache == "~/.sf-broker/tokens.json"
