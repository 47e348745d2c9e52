# -*- coding: utf-8 -*-
"""
Agent Hub - Catalog client for reusable AI assistant artifacts.

Subscribe to remote catalogs of prompts, instructions, task templates,
chat modes, profiles and agent definitions; search them locally; and
install, update and remove them in a project tree.

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
2026-10-11
"""

__version__ = "0.1.0"
__author__ = "Agent Hub contributors"


def open_hub(**kwargs):
    """Open an Agent Hub session.

    Re-exported from ``agenthub.core.hub.AgentHub``.
    See :class:`agenthub.core.hub.AgentHub` for the accepted arguments.
    """
    from agenthub.core.hub import AgentHub
    return AgentHub(**kwargs)


__all__: list = ["open_hub"]
