from researchvault.cli import app

app()
