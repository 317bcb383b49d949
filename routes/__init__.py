# Routes package - registers all blueprints with the Flask app

def register_blueprints(app):
    """Register all route blueprints with the Flask app."""
    from .cells import cells_bp

    app.register_blueprint(cells_bp)
