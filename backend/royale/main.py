from flask import Blueprint, current_app, send_from_directory

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return send_from_directory(current_app.config['STATIC_DIR'], 'index.html')
