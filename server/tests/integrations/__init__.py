"""Tests for the DocuSign and Stripe adapters."""
