"""
Billing kernel: persistence, domain records, read selectors and the write
services (approval workflow, company group registry) of the monthly
billing engine.
"""

__version__ = "1.0.0"
