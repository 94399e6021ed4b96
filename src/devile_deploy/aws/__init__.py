"""AWS discovery of deployment targets."""
