"""HomeSocial: real-estate listings with comments and buyer/owner messaging."""
