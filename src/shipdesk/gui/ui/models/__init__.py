"""Qt models for the shipment table widgets."""
