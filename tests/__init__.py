"""
Test Suite for epcheck
======================

Test Structure:
    - test_models.py: data model behavior
    - test_openapi.py: spec loading and endpoint extraction
    - test_patterns.py: idiom family and path templating
    - test_discovery.py: file enumeration and ignore rules
    - test_content.py: per-file and concurrent scanning
    - test_analyzer.py: aggregation, filtering, ordering, end-to-end analysis
    - test_config.py / test_output.py / test_cli.py: ambient layers
"""
