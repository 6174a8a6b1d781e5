"""
Merchant verification harness: catalog, driver, reporters and CLI runner.
"""
