"""Cloud provisioning examples with an await-condition poller."""
