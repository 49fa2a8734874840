"""Session services: board model, readiness coordination and move relay.

Nothing in this package imports Flask; socket handlers inject an emitter
so the same objects can be driven directly from tests.
"""
