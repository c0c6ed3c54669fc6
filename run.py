#!/usr/bin/env python3
"""Scheduler entry point: run one backup and exit with its status"""
from pgbackup.runner import main

if __name__ == '__main__':
    main()
