# =============================================================================
# originmap/cli/__init__.py — CLI Module Overview
# =============================================================================
#
# Operator tools for the persistent origin cache, runnable without the web
# server:
#
#   resolve         Resolve artist names through the full pipeline (cache
#                   first, MusicBrainz for misses) and print the result.
#   clear-unknowns  Delete every cached negative entry so the next pass
#                   retries those artists.
#   stats           Show how many entries the cache holds.
#
# The CLI builds its own components (one-shot script, no DI container) and
# uses argparse like the rest of the tooling.
# =============================================================================

"""CLI tools for originmap.

- ``python -m originmap.cli resolve "Daft Punk" "The Roots"``
- ``python -m originmap.cli clear-unknowns``
- ``python -m originmap.cli stats``
"""
