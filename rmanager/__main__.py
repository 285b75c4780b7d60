#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Runs a single Redis console command, same as rmanager-command.
"""

import sys

import rmanager.tools


if __name__ == "__main__":
    sys.exit(rmanager.tools.command())
