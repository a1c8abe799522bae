"""
VeriSource - Content Verification Backend

Analysis request pipeline, plan-tiered quota ledger and publisher
credibility registry for the VeriSource verification service.
"""

__version__ = "1.0.0"
