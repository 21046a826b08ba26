"""alarmfilter - filter-model synchronization and query composition for alarm widgets."""

__version__ = "0.1.0"
