"""CLI tools for CrateDigger.

- ``cratedigger discover`` -- run catalog discovery once.
- ``cratedigger recommend`` -- fetch ListenBrainz recommendations once.
- ``cratedigger pending`` / ``cratedigger reject <mbid>`` -- inspect and
  prune the pending queue.
"""
