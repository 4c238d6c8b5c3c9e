"""Pytest configuration and shared fixtures.

This module contains captured package manager outputs and fixtures used
across all test modules.
"""

from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_xdg_dirs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point every XDG directory at a temporary location."""
    for env_var, name in (
        ("XDG_CONFIG_HOME", "config"),
        ("XDG_DATA_HOME", "data"),
        ("XDG_STATE_HOME", "state"),
        ("XDG_CACHE_HOME", "cache"),
    ):
        monkeypatch.setenv(env_var, str(tmp_path / name))
    return tmp_path


@pytest.fixture
def mock_dpkg_output() -> str:
    """Sample dpkg-query output for testing."""
    return """firefox\t128.0\tMozilla Firefox web browser
neovim\t0.9.5\tVim-based text editor
libgtk-3-0\t3.24.41\tGTK graphical toolkit
python3\t3.11.4\tInteractive high-level object-oriented language
curl\t8.5.0\tCommand line tool for transferring data"""


@pytest.fixture
def mock_apt_upgradable_output() -> str:
    """Sample apt list --upgradable output for testing."""
    return """Listing... Done
firefox/jammy-updates 129.0+build1 amd64 [upgradable from: 128.0]
curl/jammy-security 8.5.0-2ubuntu1 amd64 [upgradable from: 8.5.0-1]"""


@pytest.fixture
def mock_empty_output() -> str:
    """Empty output for testing edge cases."""
    return ""


@pytest.fixture
def mock_flatpak_output() -> str:
    """Sample flatpak list output for testing."""
    return """com.spotify.Client\t1.2.31.1205\tSpotify\t1.2 GB
org.mozilla.firefox\t128.0\tFirefox\t500 MB
org.gnome.Calculator\t46.1\tCalculator\t50 MB
io.github.celluloid_player.Celluloid\t0.26\tCelluloid\t100 MB"""


@pytest.fixture
def mock_snap_list_output() -> str:
    """Sample snap list output for testing."""
    return """Name               Version          Rev    Tracking         Publisher   Notes
core22             20240111         1122   latest/stable    canonical✓  base
firefox            128.0-2          4650   latest/stable    mozilla✓    -
gnome-42-2204      0+git.510a601    176    latest/stable    canonical✓  -
snapd              2.61.2           21184  latest/stable    canonical✓  snapd
spotify            1.2.31.1205      75     latest/stable    spotify✓    -"""


@pytest.fixture
def mock_pacman_info_output() -> str:
    """Sample pacman -Qi output with two packages."""
    return """Name            : bash
Version         : 5.2.026-2
Description     : The GNU Bourne Again shell
URL             : https://www.gnu.org/software/bash/bash.html
Licenses        : GPL-3.0-or-later
Depends On      : readline  libreadline.so=8-64  glibc  ncurses
Installed Size  : 8.22 MiB
Packager        : Levente Polyak <anthraxx@archlinux.org>
Install Date    : Mon 12 Feb 2024 10:00:00 AM CET

Name            : htop
Version         : 3.3.0-3
Description     : Interactive process viewer
URL             : https://htop.dev/
Licenses        : GPL-2.0-only
Depends On      : None
Installed Size  : 411.00 KiB
Packager        : None
Install Date    : Tue 13 Feb 2024 09:30:00 AM CET"""


@pytest.fixture
def mock_pacman_search_output() -> str:
    """Sample pacman -Ss output for testing."""
    return """extra/htop 3.3.0-3 [installed]
    Interactive process viewer
extra/btop 1.3.2-1
    A monitor of system resources, bpytop ported to C++
community/glances 3.4.0.3-1
    CLI curses-based monitoring tool"""


@pytest.fixture
def mock_npm_list_output() -> str:
    """Sample npm list -g --depth=0 --json output."""
    return """{
  "name": "lib",
  "dependencies": {
    "npm": {"version": "10.2.4", "overridden": false},
    "typescript": {"version": "5.3.3", "overridden": false},
    "broken": {}
  }
}"""


@pytest.fixture
def mock_pip_list_output() -> str:
    """Sample pip3 list --format=json output."""
    return '[{"name": "requests", "version": "2.31.0"}, {"name": "rich", "version": "13.7.0"}]'
