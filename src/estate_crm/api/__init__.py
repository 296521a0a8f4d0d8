"""HTTP API for estate_crm."""
