from app.framecamp import create_app

app = create_app()
