"""
Request fulfillment engine.

Provides:
- Access code issuance with bounded collision retry
- Upload validation by content signature
- Template interpolation
- Destination status tracking and request completion aggregation
- Email dispatch of finished letters
"""
