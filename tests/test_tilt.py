from __future__ import annotations

import itertools
from datetime import datetime, timezone

import pytest

from brewski.devices.bluetooth import Advertisement
from brewski.devices.tilt import (
    TILT_COLORS,
    TiltHydrometer,
    TiltState,
    identify_tilt,
    parse_tilt_data,
)
from tests.fakes import FakeInbox, tilt_advertisement, tilt_payload


def _decoder(*advertisements: Advertisement, **calibration: float) -> tuple[TiltHydrometer, FakeInbox]:
    inbox = FakeInbox(list(advertisements))
    return TiltHydrometer("tilts", inbox, **calibration), inbox


def test_known_colors() -> None:
    assert sorted(TILT_COLORS.values()) == sorted(
        ["red", "green", "black", "purple", "orange", "blue", "yellow", "pink"]
    )


def test_end_to_end_red_with_calibration() -> None:
    payload = bytes.fromhex("4C000215" "A495BB10C5B14B44B5121370F02D74DE" "0043" "0410" "C5")
    decoder, _ = _decoder(
        Advertisement(address="AA:BB", manufacturer_data=payload),
        temperature_calibration=-2,
        gravity_calibration=0.003,
    )

    before = datetime.now(tz=timezone.utc)
    [sample] = decoder.read()

    assert sample.device_name == "tilts"
    assert dict(sample.tags) == {"color": "red"}
    assert [d.name for d in sample.datapoints] == ["temperature", "gravity"]
    assert sample.fields()["temperature"] == pytest.approx(65)
    assert sample.fields()["gravity"] == pytest.approx(1.043)
    assert all(d.time >= before for d in sample.datapoints)


def test_parse_tilt_data() -> None:
    temperature, gravity = parse_tilt_data(tilt_payload(temperature=67, gravity=1040))
    assert temperature == 67.0
    assert gravity == pytest.approx(1.040)


@pytest.mark.parametrize(
    "payload",
    [
        tilt_payload()[:24],
        tilt_payload() + b"\x00",
        b"",
        tilt_payload(preamble=bytes.fromhex("4C000216")),
        tilt_payload(preamble=bytes.fromhex("59000215")),
        tilt_payload(uuid_hex="A495BB90C5B14B44B5121370F02D74DE"),
        tilt_payload(uuid_hex="00" * 16),
    ],
)
def test_non_tilt_advertisements_are_ignored(payload: bytes) -> None:
    advertisement = Advertisement(address="11:22", manufacturer_data=payload)
    decoder, _ = _decoder(advertisement)

    assert identify_tilt(advertisement) is None
    assert decoder.read() == []
    assert all(state == TiltState() for state in decoder.states.values())


def test_identifier_lookup_is_case_insensitive_hex() -> None:
    advertisement = Advertisement(
        address="11:22",
        manufacturer_data=tilt_payload(uuid_hex="a495bb60c5b14b44b5121370f02d74de"),
    )
    assert identify_tilt(advertisement) == "blue"


def test_running_average_is_order_independent() -> None:
    readings = [(60, 1050), (62, 1040), (70, 1030), (64, 1046)]
    expected_temperature = sum(t for t, _ in readings) / len(readings)
    expected_gravity = sum(g for _, g in readings) / len(readings) / 1000

    for ordering in itertools.permutations(readings):
        decoder, _ = _decoder(
            *(tilt_advertisement("green", temperature=t, gravity=g) for t, g in ordering)
        )
        [sample] = decoder.read()
        assert sample.fields()["temperature"] == pytest.approx(expected_temperature)
        assert sample.fields()["gravity"] == pytest.approx(expected_gravity)


def test_state_average_updates_incrementally() -> None:
    state = TiltState()
    state.add(temperature=4.5, gravity=0)
    assert state.ever_seen
    assert (state.running_gravity, state.running_temperature) == (0, 4.5)

    state.add(temperature=9, gravity=0.9)
    assert state.running_gravity == pytest.approx(0.45)
    assert state.running_temperature == pytest.approx(6.75)

    state.add(temperature=7.5, gravity=2.43)
    assert state.running_gravity == pytest.approx(1.11)
    assert state.running_temperature == pytest.approx(7)
    assert state.count_since_last_read == 3


def test_counts_per_color() -> None:
    decoder, inbox = _decoder(
        *([tilt_advertisement("red")] * 3),
        *([tilt_advertisement("yellow")] * 4),
        tilt_advertisement("pink"),
    )
    for advertisement in inbox.drain():
        decoder.accumulate(advertisement)

    assert decoder.states["red"].count_since_last_read == 3
    assert decoder.states["yellow"].count_since_last_read == 4
    assert decoder.states["pink"].count_since_last_read == 1
    assert decoder.states["black"].count_since_last_read == 0
    assert not decoder.states["purple"].ever_seen


def test_read_resets_counts_but_keeps_running_values() -> None:
    decoder, _ = _decoder(
        tilt_advertisement("red", temperature=66, gravity=1044),
        tilt_advertisement("red", temperature=68, gravity=1046),
        tilt_advertisement("orange", temperature=70, gravity=1010),
    )

    decoder.read()

    assert all(s.count_since_last_read == 0 for s in decoder.states.values())
    assert decoder.states["red"].running_temperature == pytest.approx(67)
    assert decoder.states["red"].running_gravity == pytest.approx(1.045)
    assert decoder.states["red"].ever_seen
    assert decoder.states["orange"].ever_seen
    assert not decoder.states["blue"].ever_seen


def test_unseen_colors_never_emitted_and_quiet_colors_keep_reporting() -> None:
    decoder, inbox = _decoder(tilt_advertisement("purple", temperature=64, gravity=1012))

    first = decoder.read()
    assert [dict(s.tags) for s in first] == [{"color": "purple"}]

    second = decoder.read()
    assert [dict(s.tags) for s in second] == [{"color": "purple"}]
    assert second[0].fields() == first[0].fields()

    inbox.pending.append(tilt_advertisement("black", temperature=60, gravity=1000))
    third = decoder.read()
    assert [s.tags["color"] for s in third] == ["black", "purple"]


def test_new_cycle_replaces_previous_average() -> None:
    decoder, inbox = _decoder(tilt_advertisement("red", temperature=60, gravity=1060))
    decoder.read()

    inbox.pending.extend(
        [
            tilt_advertisement("red", temperature=70, gravity=1020),
            tilt_advertisement("red", temperature=72, gravity=1022),
        ]
    )
    [sample] = decoder.read()

    assert sample.fields()["temperature"] == pytest.approx(71)
    assert sample.fields()["gravity"] == pytest.approx(1.021)


def test_calibration_is_applied_only_on_emission() -> None:
    decoder, _ = _decoder(tilt_advertisement("blue", temperature=68, gravity=1050))
    [uncalibrated] = decoder.read()

    decoder.temperature_calibration = 1.5
    decoder.gravity_calibration = -0.002
    [calibrated] = decoder.read()

    assert decoder.states["blue"].running_temperature == pytest.approx(68)
    assert decoder.states["blue"].running_gravity == pytest.approx(1.050)
    assert uncalibrated.fields()["temperature"] == pytest.approx(68)
    assert calibrated.fields()["temperature"] == pytest.approx(69.5)
    assert calibrated.fields()["gravity"] == pytest.approx(1.048)


def test_samples_follow_color_table_order() -> None:
    decoder, _ = _decoder(
        tilt_advertisement("pink"),
        tilt_advertisement("red"),
        tilt_advertisement("blue"),
    )

    assert [s.tags["color"] for s in decoder.read()] == ["red", "blue", "pink"]
