"""Tests for the roster error hierarchy."""

import pytest

from roster.errors import (
    ApplicationError,
    AuthenticationError,
    DomainError,
    InfrastructureError,
    MutationStateError,
    PermissionDeniedError,
    RecordNotFoundError,
    RemoteError,
    RosterError,
    SessionExpiredError,
    SettingsLoadError,
    SettingsValidationError,
    TransportError,
    ValidationError,
)


@pytest.mark.parametrize("layer", [DomainError, InfrastructureError, ApplicationError])
def test_layers_share_a_root(layer):
    assert issubclass(layer, RosterError)


def test_error_taxonomy():
    assert issubclass(ValidationError, DomainError)
    assert issubclass(TransportError, InfrastructureError)
    assert issubclass(RemoteError, InfrastructureError)
    assert not issubclass(TransportError, RemoteError)
    assert issubclass(SessionExpiredError, ApplicationError)
    assert issubclass(MutationStateError, ApplicationError)
    assert issubclass(SettingsLoadError, RosterError)
    assert issubclass(SettingsValidationError, RosterError)


@pytest.mark.parametrize("cls", [AuthenticationError, PermissionDeniedError, RecordNotFoundError])
def test_status_errors_are_remote_errors(cls):
    error = cls("nope", status_code=418, payload={"message": "nope"})

    assert isinstance(error, RemoteError)
    assert error.message == "nope"
    assert error.status_code == 418
    assert error.payload == {"message": "nope"}


def test_remote_error_defaults():
    error = RemoteError("failed")

    assert error.status_code is None
    assert error.payload == {}
    assert str(error) == "failed"
