#!/usr/bin/env python3
"""
Run Comparison Dashboard - Flask Backend
Serves run names, rule findings and raw series to the dashboard front end.
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from perfrules import default_registry
from perfrules.constants import DEFAULT_HOST, DEFAULT_PORT, EXIT_PARSE_ERROR, EXIT_SUCCESS
from perfrules.errors import MalformedPayload, RunNotFound, SessionStateError, UnknownDataType
from perfrules.session import DashboardSession


def create_app(session: DashboardSession) -> Flask:
    """Build the API around an already loaded session."""
    app = Flask(__name__)
    CORS(app)

    @app.route('/api/health')
    def health():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'session': session.state.value,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    @app.route('/api/runs')
    def get_runs():
        """Run names in load order."""
        try:
            return jsonify({'runs': session.run_names()})
        except SessionStateError as e:
            return jsonify({'error': str(e)}), 409

    @app.route('/api/rule-sets')
    def get_rule_sets():
        """Registered data types with their rule names."""
        rule_sets = []
        for data_type in session.registry.data_types():
            rule_set = session.registry.get(data_type)
            rule_sets.append({
                'data_type': rule_set.data_type,
                'pretty_name': rule_set.pretty_name,
                'rules': [
                    {'name': r.name, 'kind': r.kind.value, 'description': r.description}
                    for r in rule_set.rules
                ],
            })
        return jsonify({'rule_sets': rule_sets})

    @app.route('/api/findings', methods=['POST'])
    def get_findings():
        """Evaluate one data type. Body: {data_type, base_run?, runs?}."""
        data = request.get_json(silent=True) or {}
        data_type = data.get('data_type')
        if not data_type:
            return jsonify({'error': "'data_type' is required"}), 400

        runs = data.get('runs')
        if runs is not None and not isinstance(runs, list):
            return jsonify({'error': "'runs' must be a list of run names"}), 400

        try:
            report = session.report(data_type, base_run=data.get('base_run'), runs=runs)
        except UnknownDataType as e:
            return jsonify({'error': str(e)}), 404
        except SessionStateError as e:
            return jsonify({'error': str(e)}), 409
        except ValueError as e:
            return jsonify({'error': str(e)}), 400

        return jsonify(report)

    @app.route('/api/data/<data_type>/<run>')
    def get_run_data(data_type, run):
        """Raw collect/print series of one run, for charting."""
        try:
            series = session.store.get_series(run, data_type)
        except RunNotFound as e:
            return jsonify({'error': str(e)}), 404
        except MalformedPayload as e:
            return jsonify({'error': str(e), 'message': 'Run data is malformed'}), 422
        except SessionStateError as e:
            return jsonify({'error': str(e)}), 409

        return jsonify({
            'run': run,
            'data_type': data_type,
            'collect': series.collect.as_dict(),
            'print': series.print.as_dict(),
        })

    return app


def main(argv: Optional[List[str]] = None) -> int:
    """Serve the runs given on the command line."""
    run_dirs = sys.argv[1:] if argv is None else argv
    if not run_dirs:
        print("Usage: perfrules-dashboard RUN_DIR [RUN_DIR ...]", file=sys.stderr)
        return EXIT_PARSE_ERROR

    session = DashboardSession(default_registry())
    try:
        names = session.load_dirs(run_dirs)
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Could not load runs: {e}", file=sys.stderr)
        return EXIT_PARSE_ERROR
    print(f"✅ Loaded {len(names)} run(s): {', '.join(names)}")

    host = os.getenv('PERFRULES_HOST', DEFAULT_HOST)
    port = int(os.getenv('PERFRULES_PORT', DEFAULT_PORT))
    debug = os.getenv('FLASK_ENV', 'production') == 'development'

    print(f"📊 Run comparison dashboard on http://{host}:{port}")
    create_app(session).run(host=host, port=port, debug=debug)
    return EXIT_SUCCESS


if __name__ == '__main__':
    sys.exit(main())
