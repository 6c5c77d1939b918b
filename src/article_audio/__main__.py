import sys

from article_audio.cli import main

sys.exit(main())
