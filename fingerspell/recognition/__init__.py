"""Letter recognition: features, rule cascade, nearest-neighbor model,
arbiter, temporal stabilizer and training recorder."""
