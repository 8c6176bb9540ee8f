"""devportal — developer portal backend.

Accounts (local and OAuth), API applications with their tokens, and
usage reporting for the applications' request logs.
"""

__version__ = "0.1.0"
