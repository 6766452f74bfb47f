"""Deploy pipeline steps: tests, build, sync and PM2 restart."""
