from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Friend Decider server!'})


@main.route('/api/config')
def client_config():
    return jsonify({'passwordRequired': bool(current_app.config.get('CREATION_PASSWORDS'))})
