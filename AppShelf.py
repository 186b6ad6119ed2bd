# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from app_shelf import main


if __name__ == "__main__":
    raise SystemExit(main())
