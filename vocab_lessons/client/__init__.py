"""Client-side lesson list cache, quiz controller and authoring flow."""
