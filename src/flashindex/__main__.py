from flashindex.cli.app import run

run()
