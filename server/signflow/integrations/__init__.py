"""
Integration modules for Signflow

Contains adapters for the two remote providers the workflow spans:
- E-signature (DocuSign)
- Payment gateway (Stripe Checkout)
"""
