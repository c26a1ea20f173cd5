"""Engine layer: optimizers, extensions and job-spec configuration."""
