import pytest

from app.core.loinc import resolve_channel
from app.models.vitals import Channel


@pytest.mark.parametrize(
    "code, channel",
    [
        ("8867-4", Channel.HR),
        ("2708-6", Channel.SPO2),
        ("8310-5", Channel.TEMP),
        ("9279-1", Channel.RR),
        ("85354-9", Channel.BP),
        ("8480-6", Channel.BP),
        ("8462-4", Channel.BP),
    ],
)
def test_resolve_known_codes(code, channel):
    assert resolve_channel(code) is channel


@pytest.mark.parametrize("code", ["29463-7", "8302-2", "", None, "8867"])
def test_resolve_unknown_codes_returns_none(code):
    assert resolve_channel(code) is None
