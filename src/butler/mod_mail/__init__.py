"""
Mod-mail relay: a two-way bridge between a user's DMs and a staff thread.

- **link_store.py**: Lock-guarded registry of active links (staff thread <->
  user DM) and of mirrored message pairs, with a symmetric message index so
  edits and deletes from either side resolve in O(1).

- **relay_engine.py**: Handlers for message create/update/delete and typing
  events. Looks the event up in the store, performs the mirrored call outside
  the lock, and records the result. Failures are logged and never retried.

- **lifecycle.py**: Opens and closes conversations, restores persisted links
  at startup and snapshots open links at shutdown.

- **transport.py**: The outbound platform contract and its py-cord
  implementation.

- **errors.py**: ``ConflictError``, ``AlreadyOpenError``, ``NotFoundError``
  and ``TransportError``.
"""
