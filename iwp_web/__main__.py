import sys

from iwp_web.cli import main

if __name__ == "__main__":
    sys.exit(main())

#############################
#
# Key design patterns used
# •	Application Factory: create_app() builds the app and dependencies; build_packaging_service() is shared with the CLI.
# •	Dependency Injection (manual): runner, poller, classifier and log sink are passed into the service.
# •	Service Layer: PackagingService is the caller-facing API (validate / start / tick / cancel).
# •	Repository: OutputRepository encapsulates output-folder queries.
# •	Strategy: LogSink lets each caller choose where job events go.
# ________________________________________
# Runtime flow
# •	POST /jobs            -> validate inputs, start the tool on the single background worker (409 if busy)
# •	GET  /jobs/current    -> one poll tick: running + progress, or finished + outcome (delivered once)
# •	POST /jobs/current/cancel
# •	GET  /logs?since=N    -> job events from the in-memory sink
# •	GET  /download/<name> -> a package listed in the last result
