"""Task execution: turn context, dispatch and the task loop."""
