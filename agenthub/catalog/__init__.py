# -*- coding: utf-8 -*-
"""
Catalog Module - Subscribed artifact catalogs for Agent Hub.

Provides a SQLite-backed index of the artifacts advertised by remote
catalog manifests, with manifest synchronization, full-text search,
version-based update checking and installation into a project tree.

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
2026-09-14
"""
