"""
Weight Lifting Exercise (WLE) classification report.

Importable as `wle_report` from the repository root, e.g. when running
`python -m scripts.run_report --dataset WLE`.
"""

__version__ = "1.0.0"
