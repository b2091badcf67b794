"""
Account pages: self-service profile and manager role administration (/manager).
"""
