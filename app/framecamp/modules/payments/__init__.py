"""
Payments module.

Thin client over the Mercado Pago REST API plus the webhook endpoint that
confirms campaign activation payments.
"""
