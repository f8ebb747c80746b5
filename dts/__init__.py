"""Docker Target Sync (DTS).

Keeps a Prometheus scrape-target file in step with the docker containers
that opt in to scraping via a label:
 - a snapshot of running containers seeds the event log at startup
 - the docker event stream feeds start/stop/die signals continuously
 - a timer-driven consumer coalesces the signals, rewrites the target
   file and asks Prometheus to reload
"""
