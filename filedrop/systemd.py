"""Render the systemd units that run `filedrop-sync` on a timer."""
import os
import shutil
from typing import Dict, Optional

SERVICE_NAME = "filedrop-sync.service"
TIMER_NAME = "filedrop-sync.timer"
DEFAULT_INTERVAL = "5min"

SERVICE_TEMPLATE = """\
[Unit]
Description=Sync {upload_dir} to S3
Wants=network-online.target
After=network-online.target

[Service]
Type=oneshot
Environment=FILEDROP_CONF={conf_path}
ExecStart={exec_start}
Nice=10
"""

TIMER_TEMPLATE = """\
[Unit]
Description=Run filedrop sync every {interval}

[Timer]
OnBootSec=30sec
OnUnitActiveSec={interval}
AccuracySec=30sec
Unit={service}

[Install]
WantedBy=timers.target
"""


def default_exec_start() -> str:
    return shutil.which("filedrop-sync") or "/usr/local/bin/filedrop-sync"


def render_units(
    conf_path: str,
    upload_dir: str,
    interval: str = DEFAULT_INTERVAL,
    exec_start: Optional[str] = None,
) -> Dict[str, str]:
    """Return {unit file name: contents} for the service and its timer."""
    return {
        SERVICE_NAME: SERVICE_TEMPLATE.format(
            upload_dir=upload_dir,
            conf_path=conf_path,
            exec_start=exec_start or default_exec_start(),
        ),
        TIMER_NAME: TIMER_TEMPLATE.format(interval=interval, service=SERVICE_NAME),
    }


def write_units(units: Dict[str, str], output_dir: str) -> Dict[str, str]:
    """Write each unit into `output_dir`; returns {name: written path}."""
    os.makedirs(output_dir, exist_ok=True)
    written = {}
    for name, body in units.items():
        path = os.path.join(output_dir, name)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(body)
        written[name] = path
    return written
