"""External services: the user datastore, the event sink, and the mailer."""
