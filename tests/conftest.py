# SPDX-License-Identifier: Apache-2.0
"""
Pytest bootstrap for headless/CI runs.

- QT_QPA_PLATFORM=offscreen so Qt tests don't require a display
- QT_OPENGL=software to avoid libGL lookups in headless CI
- A throwaway XDG_CONFIG_HOME so importing shelf_config never touches the
  real per-user config directory
- Repo root on sys.path for the flat module layout
"""

import os
import sys
import tempfile

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
os.environ.setdefault("QT_OPENGL", "software")

_tmp_home = tempfile.mkdtemp(prefix="appshelf-tests-")
os.environ["XDG_CONFIG_HOME"] = _tmp_home
os.environ["APPDATA"] = _tmp_home

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from shelf_models import NAMESPACES, ShelfContext  # noqa: E402
from shelf_storage import KeyValueStore  # noqa: E402


@pytest.fixture
def store(tmp_path):
    return KeyValueStore(tmp_path / "storage.json")


@pytest.fixture
def ctx():
    return ShelfContext(namespace=NAMESPACES["apps"], catalog_base="http://shelf.test/")
