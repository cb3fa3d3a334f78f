"""Feature modules: quotation templates, notifications, realtime, users."""
