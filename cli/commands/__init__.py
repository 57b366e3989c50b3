"""
Asset Registry CLI Commands Package

Command modules for the Asset Registry CLI.
"""

__all__ = ['asset', 'config']
