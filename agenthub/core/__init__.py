# -*- coding: utf-8 -*-
"""
Core Module - Settings and session wiring for Agent Hub.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-14

Modified
--------
2026-09-22
"""
