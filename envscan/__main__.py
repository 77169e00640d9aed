from envscan.cli.app import app

app()
