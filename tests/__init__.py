"""
Test suite for the trade demo backend.

Test Structure:
    - conftest.py: Shared fixtures and fake driver clients
    - test_factory.py: Async client factory lifecycle and concurrency
    - test_sync_factory.py: Thread-based client factory
    - test_collection.py: Typed collection handles over the in-memory store
    - test_settings.py: Configuration loading and validation
    - test_environment.py: Dev-mode detection
    - test_truststore.py: TRUSTSTORE_* certificate handling
    - test_models.py: Document models and validators
    - test_cli.py: Command-line interface

Running Tests:
    pytest                          # Run all tests
    pytest -v                       # Verbose output
    pytest tests/test_factory.py    # Run specific test file
"""
