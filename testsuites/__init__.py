"""
Test suites package.

`testsuites` stays importable to support:
  - IDE navigation
  - programmatic runners (e.g., `run_tests.py`)
  - shared helpers such as `testsuites.trees`
"""
