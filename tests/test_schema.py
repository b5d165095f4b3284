import pytest

import sqlblock as db
from sqlblock import SchemaError


class Games(db.Table, table_name='saved_games'):
    id = db.Column(db.Serial, primary_key=True)
    user_id = db.Column(db.BigInt, unique=True)
    board = db.Column(db.Text)
    score = db.Column(db.Integer, default=0)
    finished = db.Column(db.Boolean, default=False)
    title = db.Column(db.String(length=32), default="it's a game")
    started = db.Column(db.Timestamp(timezone=True), nullable=True)
    data = db.Column(db.JSONB, nullable=True)

    user_idx = db.Index(user_id, 'board', unique=True)


class Moves(db.Table):
    id = db.Column(db.BigSerial, primary_key=True)
    game_id = db.ForeignKey(Games.id, on_delete='set null')
    cell = db.Column(db.SmallInt)


def test_table_name():
    assert Games.__tablename__ == 'saved_games'
    assert Moves.__tablename__ == 'moves'


def test_columns_are_collected_in_order():
    assert [c.name for c in Games.columns] == [
        'id', 'user_id', 'board', 'score', 'finished', 'title', 'started', 'data',
    ]
    assert [i.name for i in Games.indexes] == ['user_idx']
    assert Games.id.table is Games


def test_create_sql():
    assert Games.create_sql() == (
        'CREATE TABLE IF NOT EXISTS saved_games (\n'
        'id SERIAL PRIMARY KEY NOT NULL,\n'
        'user_id BIGINT UNIQUE NOT NULL,\n'
        'board TEXT NOT NULL,\n'
        'score INTEGER DEFAULT (0) NOT NULL,\n'
        'finished BOOLEAN DEFAULT FALSE NOT NULL,\n'
        "title VARCHAR(32) DEFAULT 'it''s a game' NOT NULL,\n"
        'started TIMESTAMP WITH TIME ZONE NULL,\n'
        'data JSONB NULL\n'
        ');\n'
        'CREATE UNIQUE INDEX IF NOT EXISTS user_idx ON saved_games (user_id, board);'
    )


def test_create_sql_foreign_key():
    assert Moves.create_sql(exist_ok=False) == (
        'CREATE TABLE moves (\n'
        'id BIGSERIAL PRIMARY KEY NOT NULL,\n'
        'game_id INTEGER REFERENCES saved_games (id) ON DELETE SET NULL ON UPDATE NO ACTION,\n'
        'cell SMALLINT NOT NULL\n'
        ');'
    )


def test_create_sql_sqlite():
    sql = Games.create_sql(dialect='sqlite')
    assert 'id INTEGER PRIMARY KEY NOT NULL' in sql
    assert 'data TEXT NULL' in sql


def test_create_sql_mysql():
    sql = Moves.create_sql(dialect='mysql')
    assert sql.startswith('CREATE TABLE IF NOT EXISTS moves (\n')
    assert 'id BIGINT AUTO_INCREMENT PRIMARY KEY NOT NULL' in sql


def test_drop_sql():
    assert Games.drop_sql() == 'DROP TABLE IF EXISTS saved_games;'
    assert Games.drop_sql(missing_ok=False, dialect='mysql') == 'DROP TABLE saved_games;'


def test_reserved_table_name_is_quoted():
    class Order(db.Table):
        id = db.Column(db.Serial, primary_key=True)

    assert Order.create_sql().startswith('CREATE TABLE IF NOT EXISTS "order" (')
    assert Order.drop_sql(dialect='mysql') == 'DROP TABLE IF EXISTS `order`;'


@pytest.mark.parametrize('type, sql', [
    (db.Binary, 'BYTEA'),
    (db.Double, 'REAL'),
    (db.Interval(field='DAY'), 'INTERVAL DAY'),
    (db.Numeric(precision=10, scale=2), 'NUMERIC(10, 2)'),
    (db.Numeric(), 'NUMERIC'),
    (db.String(length=2, fixed=True), 'CHAR(2)'),
    (db.String(), 'TEXT'),
    (db.Text(), 'TEXT'),
    (db.Array(db.SmallInt), 'SMALLINT[]'),
    (db.Timestamp(), 'TIMESTAMP'),
])
def test_type_sql(type, sql):
    if isinstance(type, db.Type):
        assert type.sql == sql
    else:
        assert type().sql == sql


def test_real_type():
    assert db.Integer.real_type
    assert not db.Serial.real_type


def test_schema_errors():
    with pytest.raises(SchemaError):
        db.Numeric(precision=1001)
    with pytest.raises(SchemaError):
        db.String(fixed=True)
    with pytest.raises(SchemaError):
        db.ForeignKey(Games.id, on_delete='explode')
    with pytest.raises(SchemaError):
        db.Index()


def test_column_validation():
    with pytest.raises(ValueError):
        db.Column(db.Integer, primary_key=True, unique=True)
    with pytest.raises(TypeError):
        db.Column(int)


def test_unbound_column():
    with pytest.raises(RuntimeError):
        db.Column(db.Integer).create_sql()


def test_columns_are_hashable():
    assert len({Games.id, Games.board, Games.id}) == 2


# ------ result mapping ------

def test_instances():
    game = Games(id=1, board='...')
    assert game.id == 1
    assert game.board == '...'
    assert game.score is None
    assert Games.id is not game.id


def test_unknown_keyword():
    with pytest.raises(TypeError):
        Games(colour='red')


def test_from_record_skips_unknown_keys():
    move = Moves.from_record({'id': 3, 'game_id': 1, 'cell': 40, 'title': 'from a join'})
    assert move == Moves(id=3, game_id=1, cell=40)
    assert move.to_dict() == {'id': 3, 'game_id': 1, 'cell': 40}


def test_equality_is_per_table():
    assert Moves(id=1) != Games(id=1)


def test_all_tables():
    tables = db.all_tables()
    assert Games in tables
    assert Moves in tables


class Blobs(db.Table):
    id = db.Column(db.Serial, primary_key=True)
    payload = db.Column(db.Binary)
    meta = db.Column(db.JSONB, nullable=True)


def test_binary_and_jsonb_per_dialect():
    assert 'payload BYTEA NOT NULL' in Blobs.create_sql()
    assert 'meta JSONB NULL' in Blobs.create_sql()

    sqlite = Blobs.create_sql(dialect='sqlite')
    assert 'payload BLOB NOT NULL' in sqlite
    assert 'meta TEXT NULL' in sqlite

    mysql = Blobs.create_sql(dialect='mysql')
    assert 'payload BLOB NOT NULL' in mysql
    assert 'meta JSON NULL' in mysql
    assert 'id INT AUTO_INCREMENT PRIMARY KEY NOT NULL' in mysql


def test_unbound_index():
    with pytest.raises(RuntimeError):
        db.Index('a').create_sql()
