# conftest.py - root-level pytest configuration
import os
import sys

# Ensure the project root is on sys.path so that
# ``import prioritise`` works without an editable install.
sys.path.insert(0, os.path.dirname(__file__))
