#!/usr/bin/env python3

"""Run the inboxkit command line interface (``python -m inboxkit.main``)."""

from __future__ import annotations

from inboxkit.ui.cli import run

if __name__ == "__main__":
    run()
