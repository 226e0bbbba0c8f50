"""Routing: ordered layer stacks and the continuation-passing dispatcher.

Layers are registered during setup and become read-only when the app
freezes. Dispatch walks a stack in registration order, never backtracking.
"""
