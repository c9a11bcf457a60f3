"""State/store layer.

This package is the single source of truth for the UI-observable wallet
state. Every mutation is a named :class:`~walletcore.state.actions.Action`
reduced by the pure root reducer inside :class:`~walletcore.state.store.Store`.
"""
