from talkhint.config.constants import ALLOWED_ORIGINS
from talkhint.messaging.frames import LocalFrame
from talkhint.messaging.messenger import CrossFrameMessenger
from talkhint.messaging.probes import origin_from_url, probe_all_origins, probe_frame


def test_origin_from_url():
    assert origin_from_url("https://talkhint.lovable.app/app?x=1") == "https://talkhint.lovable.app"
    assert origin_from_url("http://localhost:3000/") == "http://localhost:3000"
    assert origin_from_url("/relative/path") is None


def test_probe_without_parent(prod_settings):
    messenger = CrossFrameMessenger(LocalFrame("https://talkhint.lovable.app"), prod_settings)
    assert probe_all_origins(messenger, None) == {}


def test_probe_all_origins_in_production(prod_settings):
    parent = LocalFrame("https://lovable.dev", "parent")
    child = LocalFrame("https://talkhint.lovable.app", "child", parent=parent)
    messenger = CrossFrameMessenger(child, prod_settings)

    results = probe_all_origins(messenger, parent)

    assert list(results) == ALLOWED_ORIGINS
    assert "*" not in results
    assert all(results.values())
    # Only the probe addressed to the parent's own origin lands
    assert len(parent.delivered) == 1
    landed = parent.delivered[0].data
    assert landed["type"] == "CROSS_ORIGIN_TEST"
    assert landed["payload"]["targetOrigin"] == "https://lovable.dev"


def test_probe_all_origins_in_development_adds_wildcard(dev_settings):
    parent = LocalFrame("http://localhost:8080", "parent")
    messenger = CrossFrameMessenger(LocalFrame("http://localhost:5173"), dev_settings)
    results = probe_all_origins(messenger, parent)
    assert results["*"] is True


def test_probe_frame_hits_frame_origin_first(prod_settings):
    parent = LocalFrame("https://lovable.dev", "parent")
    frame = LocalFrame("https://talkhint.lovable.app", "frame", parent=parent)
    messenger = CrossFrameMessenger(parent, prod_settings)

    assert probe_frame(messenger, frame, "https://talkhint.lovable.app/index.html")

    assert len(frame.delivered) == 1
    data = frame.delivered[0].data
    assert data["type"] == "TEST"
    assert data["payload"]["targetOrigin"] == "https://talkhint.lovable.app"


def test_probe_frame_missing(prod_settings):
    messenger = CrossFrameMessenger(LocalFrame("https://lovable.dev"), prod_settings)
    assert not probe_frame(messenger, None, "https://talkhint.lovable.app")
