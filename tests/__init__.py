"""SIRIUS Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - memory/: MemoryStore and persistence backends
  - learning/: circadian, pattern learner, prediction, analytics, RLVR agent
  - automation/: triggers, worker offload, scheduler, default triggers
  - test_config_models.py, test_logging_config.py, test_cli.py: package root

Running tests:
    # All tests
    pytest

    # Specific package
    pytest tests/unit/automation/

    # With coverage
    pytest --cov=sirius --cov-report=term-missing
"""
