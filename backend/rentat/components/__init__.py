"""
Stateful models behind app widgets.

These hold the state a screen component would keep locally, so the same
rules can be exercised without a UI.
"""
