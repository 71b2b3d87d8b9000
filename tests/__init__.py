"""
Test Suite for Mistake Analytics

This package contains tests for every engine component:
- pattern catalog
- instance store and storage backends
- aggregation, trend, insight and statistics rules
- the engine facade and its end-to-end scenarios
"""
