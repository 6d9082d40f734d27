from __future__ import annotations

import pytest

from wgpanel.domain.models import Environment
from wgpanel.services.config_store import ConfigStore
from wgpanel.services.config_viewer import REDACTED, ConfigViewError, ConfigViewer, redact_config


MERGED = """[Interface]
PrivateKey = dXNlci1wcml2YXRlLWtleQ==
Address = 10.254.0.23/32
DNS = 169.254.169.254

# operator managed
[Peer]
Endpoint = 34.128.85.147:51820
PresharedKey = dXNlci1wc2s=
PublicKey = 1KEK7tM3wzoK6Et+xRZpNJJN33lrTvzTasTMjXx0sGk=
AllowedIPs = 10.80.0.0/16, 10.88.0.0/16
PersistentKeepAlive = 10
"""


def test_redact_config_hides_keys_and_splits_allowed_ips() -> None:
    shown = redact_config(MERGED).splitlines()

    assert shown == [
        "[Interface]",
        f"PrivateKey = {REDACTED}",
        "Address = 10.254.0.23/32",
        "DNS = 169.254.169.254",
        "[Peer]",
        "Endpoint = 34.128.85.147:51820",
        f"PresharedKey = {REDACTED}",
        f"PublicKey = {REDACTED}",
        "AllowedIPs =",
        "  10.80.0.0/16",
        "  10.88.0.0/16",
        "PersistentKeepAlive = 10",
    ]


def test_viewer_reads_merged_config(tmp_path) -> None:
    store = ConfigStore(tmp_path)
    store.write_text(store.config_path(Environment.NON_PRODUCTION), MERGED)

    shown = ConfigViewer(store).read(Environment.NON_PRODUCTION)

    assert "dXNlci1wc2s=" not in shown
    assert "Endpoint = 34.128.85.147:51820" in shown


def test_viewer_reports_undecodable_config(tmp_path) -> None:
    store = ConfigStore(tmp_path)
    store.config_path(Environment.PRODUCTION).write_bytes(b"\xff\xfe[\x00I\x00n\x00")

    with pytest.raises(ConfigViewError, match="Failed to read config file"):
        ConfigViewer(store).read(Environment.PRODUCTION)


def test_viewer_reports_missing_config(tmp_path) -> None:
    viewer = ConfigViewer(ConfigStore(tmp_path))

    with pytest.raises(ConfigViewError, match="julo-prod.conf"):
        viewer.read(Environment.PRODUCTION)
