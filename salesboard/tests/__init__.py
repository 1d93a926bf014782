'''
Sales Conversion Backend Test Suite

Test Modules:
-------------
- test_normalizer.py: field lookup, sheet dates (Buddhist era, two-digit years,
  day/month order) and amounts
- test_grouping.py: identity keys, dropped rows, timeline ordering
- test_funnel.py: upgrade-bill tally, funnel classification, report invariants,
  search and breakdown projections
- test_notes.py: note join and the asyncpg notes store
- test_sheet_source.py: quote-aware CSV tokenizing and both fetch paths
- test_refresh.py: last-write-wins refresh coordination
- test_api.py: HTTP contract of the FastAPI routes

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v
'''

__all__ = []
