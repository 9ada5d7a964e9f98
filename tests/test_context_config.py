import pytest
from pydantic import ValidationError

from doctainer.core.context import DoctainerContext
from doctainer.core.models import (
    NotifyRequest,
    StoreSettings,
    WaitRequest,
    service_key,
    validate_service_name,
)

def test_context_defaults():
    ctx = DoctainerContext()

    assert ctx.store.etcd_url == "http://127.0.0.1:4001"
    assert ctx.store.connect_timeout == 5.0
    assert ctx.store.request_timeout == 10.0
    assert ctx.settings.log_level == "INFO"

def test_context_init_with_config():
    config_data = {
        "store": {
            "etcd_url": "https://etcd.internal:2379/",
            "connect_timeout": 1.5,
        },
        "doctainer": {
            "log_level": "error",
        },
    }

    ctx = DoctainerContext(config_dict=config_data)

    assert ctx.store.etcd_url == "https://etcd.internal:2379"
    assert ctx.store.connect_timeout == 1.5
    assert ctx.settings.log_level == "ERROR"

def test_store_settings_from_environment(monkeypatch):
    monkeypatch.setenv("ETCD_URL", "http://10.0.0.5:4001")
    monkeypatch.setenv("DOCTAINER_STORE_REQUEST_TIMEOUT", "2.5")

    settings = StoreSettings()

    assert settings.etcd_url == "http://10.0.0.5:4001"
    assert settings.request_timeout == 2.5

def test_store_settings_reject_bad_values():
    with pytest.raises(ValidationError):
        StoreSettings(etcd_url="   ")
    with pytest.raises(ValidationError):
        StoreSettings(connect_timeout=0)

def test_context_rejects_unknown_log_level():
    with pytest.raises(ValidationError):
        DoctainerContext(config_dict={"doctainer": {"log_level": "chatty"}})

def test_request_defaults():
    wait = WaitRequest(service="db")
    notify = NotifyRequest(service="db")

    assert wait.expected_status == "running"
    assert wait.timeout_seconds == 0
    assert notify.status == "running"

def test_wait_request_rejects_negative_timeout():
    with pytest.raises(ValidationError):
        WaitRequest(service="db", timeout_seconds=-1)

def test_service_key_and_name_validation():
    assert service_key("db") == "service/db"
    assert validate_service_name("  db ") == "db"
    with pytest.raises(ValueError, match="missing service name"):
        validate_service_name(None)
    with pytest.raises(ValueError, match="not allowed"):
        validate_service_name("a#b")

@pytest.mark.parametrize("name", [".", "..", "a%2Fb", "%"])
def test_service_names_cannot_leave_service_namespace(name):
    with pytest.raises(ValueError, match="invalid service name"):
        validate_service_name(name)

def test_dotted_service_names_are_allowed():
    assert validate_service_name("api.v2") == "api.v2"
