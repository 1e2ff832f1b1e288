"""
Backup and restore tooling for the expenses-tracker MongoDB database.
"""

__version__ = "0.1.0"
