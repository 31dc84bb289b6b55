"""State/store layer.

This package is the single source of truth for the accessory: pollers and
commands write through :class:`pyzockzeit.state.store.StateStore` setters,
and every observable change leaves it as a :class:`StateChange` event.
"""
