"""
CourseBot - Turn-based conversational course runner for chat transports.

Subpackages:
- schemas: Pydantic models for blocks, sessions, events and user records
- classroom: Catalog loading, session store, progress engine, user records
- viewer: Rendering of blocks and results into outbound messages
- chat: Transport protocol, ephemeral messages, flow orchestration, reminders
"""

__version__ = "0.1.0"
