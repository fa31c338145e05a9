'''
CRM Reporting Engine Test Suite

Test Modules:
-------------
- test_csv_serializer.py: Field escaping, column transforms, chunked output
- test_metrics.py: Dashboard summary counts, pipeline value, conversion rate
- test_interaction_analytics.py: Filtering, breakdowns, 30-day timeline
- test_needs_visit.py: Urgency scoring, inclusion threshold, ordering
- test_export.py: Export enrichment, filenames, Download Sink
- test_report_cache.py: TTL boundaries, eviction, invalidation scopes
- test_duplicate_check.py: Latest-request-wins name lookups
- test_api.py: Report and export endpoint contracts

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

See conftest.py for shared fixtures and the mocked Data Access Gateway.
'''

__all__ = []
