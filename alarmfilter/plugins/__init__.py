"""Built-in alarmfilter plugins."""
