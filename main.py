#!/usr/bin/env python3
"""
Main script to convert a web article into a hosted audio file.
Uses the pipeline in src/article_audio; run from project root without installing:
  python main.py https://example.com/article
"""

import sys
from pathlib import Path

# Ensure src is on path (package lives in src/ and may not be installed)
_SRC = Path(__file__).resolve().parent / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))


if __name__ == "__main__":
    from article_audio.cli import main

    sys.exit(main())
