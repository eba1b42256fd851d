"""
Flask JSON API for knockout tournaments.

Tournaments live in process memory for the lifetime of the server. Every
request that changes a tournament swaps in the new snapshot returned by the
engine while holding the store lock.
"""
import logging
import os
import random
import threading
import uuid

from flask import Flask, jsonify, request

from knockout.config import merge_options, parse_teams
from knockout.errors import MatchNotFoundError, TournamentError
from knockout.generator import Tournament
from knockout.models import TournamentOptions

app = Flask(__name__)

if os.environ.get('TOURNAMENT_DEBUG'):
    app.logger.setLevel(logging.DEBUG)

# Structure: {tournament_id: Tournament}
_tournaments = {}
_store_lock = threading.Lock()


def _error(message, status=400):
    return jsonify({'success': False, 'error': message}), status


def _error_for(exc):
    """Map an engine error to its JSON response."""
    if isinstance(exc, MatchNotFoundError):
        return _error(str(exc), 404)
    return _error(str(exc), 400)


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _tournament_response(tournament_id, tournament, status=200, **extra):
    body = {'success': True, 'id': tournament_id}
    body.update(tournament.to_dict())
    body.update(extra)
    return jsonify(body), status


@app.route('/api/tournaments', methods=['GET'])
def api_list_tournaments():
    """List stored tournaments."""
    with _store_lock:
        items = [{'id': tournament_id, 'teams': len(t.teams), 'matches': len(t.matches), 'champion': t.champion}
                 for tournament_id, t in _tournaments.items()]
    return jsonify({'success': True, 'tournaments': items})


@app.route('/api/tournaments', methods=['POST'])
def api_create_tournament():
    """Generate a tournament from {teams, options[, random_seed]}."""
    data = _json_body()
    if data is None:
        return _error('JSON body required')
    if 'teams' not in data:
        return _error('teams is required')

    try:
        teams = parse_teams(data.get('teams'))
        options = TournamentOptions.from_dict(merge_options(data.get('options')))
        seed = data.get('random_seed')
        rng = random.Random(seed) if seed is not None else None
        tournament = Tournament.generate(teams, options, rng)
    except TournamentError as e:
        app.logger.info(f'Rejected tournament: {e}')
        return _error_for(e)

    tournament_id = uuid.uuid4().hex[:12]
    with _store_lock:
        _tournaments[tournament_id] = tournament
    app.logger.info(f'Created tournament {tournament_id} with {len(teams)} teams')
    return _tournament_response(tournament_id, tournament, 201)


@app.route('/api/tournaments/<tournament_id>', methods=['GET'])
def api_get_tournament(tournament_id):
    with _store_lock:
        tournament = _tournaments.get(tournament_id)
        if tournament is None:
            return _error('Tournament not found.', 404)
        return _tournament_response(tournament_id, tournament)


@app.route('/api/tournaments/<tournament_id>', methods=['DELETE'])
def api_delete_tournament(tournament_id):
    with _store_lock:
        if _tournaments.pop(tournament_id, None) is None:
            return _error('Tournament not found.', 404)
    app.logger.info(f'Deleted tournament {tournament_id}')
    return jsonify({'success': True})


@app.route('/api/tournaments/<tournament_id>/results', methods=['POST'])
def api_report_result(tournament_id):
    """Record the winner of a match: {match_id, winner_id}."""
    data = _json_body()
    if data is None or not data.get('match_id') or data.get('winner_id') is None:
        return _error('match_id and winner_id are required.')

    with _store_lock:
        tournament = _tournaments.get(tournament_id)
        if tournament is None:
            return _error('Tournament not found.', 404)
        try:
            tournament.apply_result(data['match_id'], data['winner_id'])
        except TournamentError as e:
            return _error_for(e)
        app.logger.info(f'Tournament {tournament_id}: {data["winner_id"]} wins {data["match_id"]}')
        return _tournament_response(tournament_id, tournament)


@app.route('/api/tournaments/<tournament_id>/withdrawals', methods=['POST'])
def api_withdraw_team(tournament_id):
    """Withdraw a team and reseed the bracket: {team_id}."""
    data = _json_body()
    if data is None or data.get('team_id') is None:
        return _error('team_id is required.')

    with _store_lock:
        tournament = _tournaments.get(tournament_id)
        if tournament is None:
            return _error('Tournament not found.', 404)
        if not tournament.withdraw(data['team_id']):
            app.logger.error(f'Tournament {tournament_id}: withdrawal of {data["team_id"]} failed')
            return _error('Team withdrawal failed', 500)
        return _tournament_response(tournament_id, tournament)


@app.route('/api/tournaments/<tournament_id>/postponements', methods=['POST'])
def api_postpone_match(tournament_id):
    """Move a match to a later date: {match_id}."""
    data = _json_body()
    if data is None or not data.get('match_id'):
        return _error('match_id is required.')

    with _store_lock:
        tournament = _tournaments.get(tournament_id)
        if tournament is None:
            return _error('Tournament not found.', 404)
        try:
            slot = tournament.postpone(data['match_id'])
        except TournamentError as e:
            return _error_for(e)
        return _tournament_response(tournament_id, tournament, slot=slot.to_dict() if slot else None)


if __name__ == '__main__':
    app.run(debug=True, port=5000)
