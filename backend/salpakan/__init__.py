from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from salpakan.config import Config

# Handlers for one connection run in arrival order; cross-connection state is locked in services
socketio = SocketIO(async_mode=None, async_handlers=False)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    # Service modules log under salpakan.*, which propagates to this logger
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from salpakan.main import main
    flask_app.register_blueprint(main)

    # Importing here ensures the handlers bind to the initialized socketio instance
    from salpakan.socketio_events import register_socketio_handlers
    register_socketio_handlers(flask_app)

    @click.command('show-deployment')
    def show_deployment_command():
        """Prints the starting board for both sides."""
        from salpakan.services.board import BoardState, Side
        board = BoardState.initial()
        click.echo(board.render())
        click.echo(f"A: {board.count(Side.A)} pieces, B: {board.count(Side.B)} pieces")

    flask_app.cli.add_command(show_deployment_command)

    return flask_app
