"""Sample program used by the test suite."""
