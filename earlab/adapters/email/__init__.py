"""Email transport adapters."""
