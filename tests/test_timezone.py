from types import SimpleNamespace

from app.core.config import settings
from app.utils.timezone import resolve_timezone


def _request(zone=None):
    return SimpleNamespace(headers={"X-Timezone": zone} if zone else {})


def test_header_wins_over_user_zone():
    user = SimpleNamespace(timezone="Europe/Berlin")
    assert resolve_timezone(_request("Asia/Tokyo"), user) == "Asia/Tokyo"


def test_invalid_header_falls_back_to_user_zone():
    user = SimpleNamespace(timezone="Europe/Berlin")
    assert resolve_timezone(_request("Not/AZone"), user) == "Europe/Berlin"


def test_default_zone_when_nothing_is_set():
    assert resolve_timezone(_request(), SimpleNamespace(timezone=None)) == settings.DEFAULT_TIMEZONE
    assert resolve_timezone() == settings.DEFAULT_TIMEZONE
