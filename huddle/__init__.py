"""
Huddle: team-management API.

Coaches, players and parents join a team with an 8-digit code, then exchange
messages, schedule events and track attendance. Records live in a generic
key-value store (in-memory, SQL or Redis) behind a FastAPI service.
"""
