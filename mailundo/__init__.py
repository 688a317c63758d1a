"""mailundo - single-level undo for Gmail mailbox actions.

Namespace package containing:
- mailundo.sdk: Gmail adapter, recording mail actions, undo ledger,
  compensation and local cache reconciliation
- mailundo.cli: Command-line interface with an interactive session
"""

__version__ = "0.3.1"
