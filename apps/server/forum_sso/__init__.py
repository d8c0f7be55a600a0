"""OAuth2 single-sign-on for pluggable identity providers."""
