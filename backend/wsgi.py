from orderdesk import create_app

app = create_app()
