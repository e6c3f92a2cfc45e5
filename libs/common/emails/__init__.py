"""
Email package.

Modules:
- client: EmailClient for sending transactional email through Resend

Templates live with the service that owns them
(services/checkout_service/templates/).
"""
