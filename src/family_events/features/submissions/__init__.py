"""Event submissions: quota-gated upsert, admin listing, CSV mirror."""
