from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from tapsprint.main import main
    flask_app.register_blueprint(main)

    from tapsprint.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from tapsprint.api.records import records
    flask_app.register_blueprint(records, url_prefix='/api/records')

    from tapsprint.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    # Ensure models are registered on the metadata for create_all / migrations
    import tapsprint.models  # noqa: F401

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the record tables."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('show-records')
    @click.option('--finger-mode', type=click.Choice(['1', '2']), default='1', show_default=True)
    @click.option('--mode-kind', type=click.Choice(['time_attack', 'tap_challenge']),
                  default='time_attack', show_default=True)
    def show_records_command(finger_mode, mode_kind):
        """Prints the best record and recent history for one board."""
        from tapsprint.services.games.store import RecordStore
        with flask_app.app_context():
            store = RecordStore(db.session, history_limit=int(flask_app.config.get('HISTORY_LIMIT', 10)))
            best = store.get_best(int(finger_mode), mode_kind)
            click.echo(f"Board {finger_mode}f/{mode_kind}")
            click.echo(f"  best: {_format_record(best, mode_kind) if best else '-'}")
            for record in store.get_history(int(finger_mode), mode_kind):
                click.echo(f"  {_format_record(record, mode_kind)}")

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(show_records_command)

    return flask_app


def _format_record(record, mode_kind):
    if mode_kind == 'time_attack':
        value = f"{record.value:.2f}s"
    else:
        value = f"{int(record.value)} taps"
    flag = ' (false start)' if record.had_false_start else ''
    return f"{record.date.isoformat()}  {value}{flag}"
