"""
main.py
---------
Entry point for StreamSync.

    python main.py serve
    python main.py fix clip.mov
    python main.py preview clip.mov --offset-ms 120
"""
import sys

from streamsync.cli import main

if __name__ == "__main__":
    sys.exit(main())
