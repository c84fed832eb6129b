# SPDX-License-Identifier: Apache-2.0
"""Digital Smile Design analysis package."""

from __future__ import annotations

import os

from dotenv import load_dotenv

# load environment variables from .env if present
load_dotenv()

# keep MediaPipe/TFLite quiet unless asked otherwise
os.environ.setdefault("GLOG_minloglevel", "2")

__all__: list[str] = []
__version__ = "0.1.0"
