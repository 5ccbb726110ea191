from __future__ import annotations

import asyncio
import logging

import pytest

from hush_harmony.permissions import LocationPolicy, PermissionGate
from hush_harmony.providers import Capability, PermissionStatus
from hush_harmony.simulation import StaticPermissionProvider

GRANTED = PermissionStatus.GRANTED
DENIED = PermissionStatus.DENIED


@pytest.mark.parametrize("platform", ["android", "ios"])
@pytest.mark.parametrize(
    "microphone, location, authorized",
    [
        (GRANTED, GRANTED, True),
        (GRANTED, DENIED, False),
        (DENIED, GRANTED, False),
        (DENIED, DENIED, False),
    ],
)
def test_authorize_truth_table(
    platform: str, microphone: PermissionStatus, location: PermissionStatus, authorized: bool
) -> None:
    provider = StaticPermissionProvider({Capability.MICROPHONE: microphone, Capability.LOCATION: location})
    gate = PermissionGate(provider, platform=platform)

    state = asyncio.run(gate.authorize())

    assert state.authorized is authorized
    assert state.microphone_granted is (microphone is GRANTED)
    assert state.location_granted is (location is GRANTED)


def test_restricted_counts_as_refused() -> None:
    provider = StaticPermissionProvider({Capability.MICROPHONE: PermissionStatus.RESTRICTED})
    state = asyncio.run(PermissionGate(provider).authorize())
    assert not state.authorized
    assert state.refused() == ["microphone"]


def test_android_requests_location() -> None:
    provider = StaticPermissionProvider()
    gate = PermissionGate(provider, platform="android")
    asyncio.run(gate.authorize())
    assert gate.location_policy is LocationPolicy.REQUEST
    assert provider.calls == [("request", Capability.MICROPHONE), ("request", Capability.LOCATION)]


def test_ios_only_checks_location() -> None:
    provider = StaticPermissionProvider()
    gate = PermissionGate(provider, platform="ios")
    asyncio.run(gate.authorize())
    assert gate.location_policy is LocationPolicy.CHECK
    assert provider.calls == [("request", Capability.MICROPHONE), ("check", Capability.LOCATION)]


def test_policy_override_wins_over_platform() -> None:
    provider = StaticPermissionProvider()
    gate = PermissionGate(provider, platform="ios", location_policy=LocationPolicy.REQUEST)
    asyncio.run(gate.authorize())
    assert ("request", Capability.LOCATION) in provider.calls


def test_unknown_platform_rejected() -> None:
    with pytest.raises(ValueError):
        PermissionGate(StaticPermissionProvider(), platform="symbian")


def test_denial_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    provider = StaticPermissionProvider({Capability.LOCATION: DENIED})
    with caplog.at_level(logging.WARNING):
        asyncio.run(PermissionGate(provider).authorize())
    records = [record for record in caplog.records if record.getMessage() == "permission_denied"]
    assert records
    assert records[0].refused == ["location"]
