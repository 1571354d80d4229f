"""
Tests for the planning routes (Flask endpoints).
These tests verify HTTP request/response handling and error mapping.
"""
import io

import pandas as pd
import pytest

from lineplan import create_app
from lineplan.config import TestingConfig


@pytest.fixture
def app():
    """Create Flask application for testing."""
    app = create_app(TestingConfig)
    app.config['TESTING'] = True
    yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def process_by_id(payload, process_id):
    return next(p for p in payload['state']['processes'] if p['id'] == process_id)


def pairs(process):
    return [(day['date'], day['quantity']) for day in process['schedule']]


# ==============================================================================
# APP
# ==============================================================================

class TestApp:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        assert response.get_json() == {'status': 'ok', 'environment': 'testing'}

    def test_unknown_route_is_json_404(self, client):
        response = client.get('/planning/nope')
        assert response.status_code == 404
        assert 'error' in response.get_json()


# ==============================================================================
# SESSION STATE
# ==============================================================================

class TestStateRoutes:

    def test_get_state(self, client):
        response = client.get('/planning/state')
        data = response.get_json()

        assert response.status_code == 200
        assert data['dropped_quantity'] == 0
        assert data['state']['target_total'] == 1800
        assert pairs(process_by_id(data, '3')) == [('2024-02-19', 500), ('2024-02-20', 1300)]

    def test_reset(self, client):
        client.post('/planning/processes/3/freeze')
        response = client.post('/planning/reset')

        assert response.status_code == 200
        assert process_by_id(response.get_json(), '3')['is_frozen'] is False

    def test_set_timeline(self, client):
        response = client.put('/planning/timeline', json={
            'start_date': '2024-03-04', 'duration_days': 2, 'total_quantity': 101,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert pairs(process_by_id(data, '2')) == [('2024-03-04', 51), ('2024-03-05', 50)]
        assert data['state']['timeline']['end_date'] == '2024-03-05'

    def test_timeline_without_working_days_reports_drop(self, client):
        response = client.put('/planning/timeline', json={
            'start_date': '2024-02-17', 'duration_days': 2, 'total_quantity': 100,
        })
        assert response.status_code == 200
        assert response.get_json()['dropped_quantity'] == 100

    def test_invalid_duration(self, client):
        response = client.put('/planning/timeline', json={
            'start_date': '2024-03-04', 'duration_days': 0, 'total_quantity': 10,
        })
        assert response.status_code == 400

    def test_malformed_date(self, client):
        response = client.put('/planning/timeline', json={
            'start_date': '03/04/2024', 'duration_days': 1, 'total_quantity': 10,
        })
        assert response.status_code == 400
        assert 'error' in response.get_json()

    def test_adjust_timeline(self, client):
        response = client.post('/planning/timeline/adjust', json={'mode': 'resize-start', 'delta_days': 1})
        timeline = response.get_json()['state']['timeline']

        assert response.status_code == 200
        assert timeline['start_date'] == '2024-02-16'
        assert timeline['duration_days'] == 3

    def test_adjust_timeline_bad_mode(self, client):
        response = client.post('/planning/timeline/adjust', json={'mode': 'spin', 'delta_days': 1})
        assert response.status_code == 400

    def test_body_must_be_object(self, client):
        response = client.put('/planning/timeline', json=[1, 2])
        assert response.status_code == 400


class TestCalendarRoutes:

    def test_put_calendar(self, client):
        response = client.put('/planning/calendar', json={'weekends_excluded': True, 'holidays': ['2024-02-19']})
        data = response.get_json()

        assert response.status_code == 200
        assert data['state']['calendar']['holidays'] == ['2024-02-19']
        assert pairs(process_by_id(data, '3')) == [('2024-02-20', 500), ('2024-02-21', 1300)]

    def test_add_and_remove_holiday(self, client):
        response = client.post('/planning/calendar/holidays', json={'date': '2024-02-19'})
        assert response.get_json()['state']['calendar']['holidays'] == ['2024-02-19']

        response = client.delete('/planning/calendar/holidays/2024-02-19')
        assert response.status_code == 200
        assert response.get_json()['state']['calendar']['holidays'] == []

    def test_add_holiday_requires_date(self, client):
        response = client.post('/planning/calendar/holidays', json={})
        assert response.status_code == 400


# ==============================================================================
# PROCESSES
# ==============================================================================

class TestProcessRoutes:

    def test_edit_dependent_day(self, client):
        response = client.put('/planning/processes/1/days/2024-02-12', json={'quantity': 300})
        data = response.get_json()

        assert response.status_code == 200
        assert data['editable'] is True
        assert data['outcome']['status'] == 'applied'
        cutting = process_by_id(data, '1')
        assert cutting['is_manual_override'] is True
        assert pairs(cutting) == [('2024-02-12', 300), ('2024-02-13', 500), ('2024-02-14', 1000)]

    def test_edit_requires_quantity(self, client):
        response = client.put('/planning/processes/1/days/2024-02-12', json={})
        assert response.status_code == 400

    def test_edit_at_aggregated_level_not_editable(self, client):
        response = client.put('/planning/processes/1/days/2024-02-12', json={'quantity': 30, 'level': 'batch'})
        data = response.get_json()

        assert response.status_code == 200
        assert data['editable'] is False
        assert data['message']
        assert process_by_id(data, '1')['is_manual_override'] is False

    def test_edit_needing_new_day_two_phase(self, client):
        client.put('/planning/timeline', json={'start_date': '2024-03-04', 'duration_days': 1, 'total_quantity': 100})

        response = client.put('/planning/processes/1/days/2024-02-28', json={'quantity': 60})
        data = response.get_json()
        assert response.status_code == 409
        assert data['needs_confirmation'] is True
        assert data['outcome']['proposed_date'] == '2024-02-29'
        assert pairs(process_by_id(data, '1')) == [('2024-02-28', 100)]

        response = client.put(
            '/planning/processes/1/days/2024-02-28', json={'quantity': 60, 'confirm_create_day': True}
        )
        assert response.status_code == 200
        assert pairs(process_by_id(response.get_json(), '1')) == [('2024-02-28', 60), ('2024-02-29', 40)]

    def test_confirmation_must_be_boolean(self, client):
        response = client.put(
            '/planning/processes/1/days/2024-02-12', json={'quantity': 1, 'confirm_create_day': 'yes'}
        )
        assert response.status_code == 400

    def test_edit_frozen_process(self, client):
        client.post('/planning/processes/1/freeze')
        response = client.put('/planning/processes/1/days/2024-02-12', json={'quantity': 300})
        assert response.status_code == 409

    def test_unknown_process(self, client):
        response = client.post('/planning/processes/99/freeze')
        assert response.status_code == 404
        assert response.get_json()['process_id'] == '99'

    def test_replace_schedule(self, client):
        response = client.put('/planning/processes/4/schedule', json={
            'schedule': [{'date': '2024-02-26', 'quantity': 1800}],
        })
        packing = process_by_id(response.get_json(), '4')

        assert response.status_code == 200
        assert packing['is_manual_override'] is True
        assert pairs(packing) == [('2024-02-26', 1800)]

    def test_replace_schedule_bad_entry(self, client):
        response = client.put('/planning/processes/4/schedule', json={'schedule': [{'date': '2024-02-26'}]})
        assert response.status_code == 400

    def test_reset_process(self, client):
        client.put('/planning/processes/1/days/2024-02-12', json={'quantity': 300})
        response = client.post('/planning/processes/1/reset')
        cutting = process_by_id(response.get_json(), '1')

        assert cutting['is_manual_override'] is False
        assert pairs(cutting) == [('2024-02-12', 500), ('2024-02-13', 500), ('2024-02-14', 800)]

    def test_change_offset(self, client):
        response = client.put('/planning/processes/3/offset', json={'offset_working_days': 1})
        finishing = process_by_id(response.get_json(), '3')

        assert finishing['offset_working_days'] == 1
        assert pairs(finishing) == [('2024-02-16', 500), ('2024-02-19', 1300)]

    def test_change_offset_requires_integer(self, client):
        response = client.put('/planning/processes/3/offset', json={'offset_working_days': 'two'})
        assert response.status_code == 400

    def test_update_details(self, client):
        response = client.patch('/planning/processes/4', json={'name': 'Boxing', 'status': 'in-progress'})
        packing = process_by_id(response.get_json(), '4')

        assert packing['name'] == 'Boxing'
        assert packing['status'] == 'in-progress'

    def test_update_details_bad_status(self, client):
        response = client.patch('/planning/processes/4', json={'status': 'shipped'})
        assert response.status_code == 400


# ==============================================================================
# READ-ONLY VIEWS
# ==============================================================================

class TestViewRoutes:

    def test_grid(self, client):
        response = client.get('/planning/grid?level=batch')
        data = response.get_json()

        assert response.status_code == 200
        assert data['level'] == 'batch'
        assert data['editable'] is False
        assert data['grand_total'] == 720

    def test_grid_unknown_level(self, client):
        assert client.get('/planning/grid?level=pallet').status_code == 400

    def test_export_csv(self, client):
        response = client.get('/planning/export?level=batch&format=csv')

        assert response.status_code == 200
        assert response.mimetype == 'text/csv'
        assert 'production_schedule_batch.csv' in response.headers['Content-Disposition']
        df = pd.read_csv(io.BytesIO(response.data))
        assert int(df['Total'].iloc[-1]) == 720

    def test_export_xlsx(self, client):
        response = client.get('/planning/export')

        assert response.status_code == 200
        assert 'production_schedule_strip.xlsx' in response.headers['Content-Disposition']
        df = pd.read_excel(io.BytesIO(response.data), engine='openpyxl')
        assert list(df['Process'])[-1] == 'Daily Totals'

    def test_export_unknown_format(self, client):
        assert client.get('/planning/export?format=pdf').status_code == 400


# ==============================================================================
# STATELESS ENGINE
# ==============================================================================

class TestEngineRoutes:

    PRIMARY = [
        {'date': '2024-02-15', 'quantity': 500},
        {'date': '2024-02-16', 'quantity': 500},
        {'date': '2024-02-17', 'quantity': 500},
        {'date': '2024-02-18', 'quantity': 300},
    ]

    def test_derive(self, client):
        response = client.post('/planning/engine/derive', json={
            'primary': self.PRIMARY, 'offset_working_days': -3, 'calendar': {'weekends_excluded': True},
        })
        assert response.status_code == 200
        assert response.get_json()['schedule'] == [
            {'date': '2024-02-12', 'quantity': 500},
            {'date': '2024-02-13', 'quantity': 500},
            {'date': '2024-02-14', 'quantity': 800},
        ]

    def test_derive_exhausted_calendar(self, app, client):
        app.config['MAX_CALENDAR_SCAN_DAYS'] = 5
        holidays = ['2024-02-%02d' % day for day in range(19, 29)]
        response = client.post('/planning/engine/derive', json={
            'primary': self.PRIMARY, 'offset_working_days': 1, 'calendar': {'holidays': holidays},
        })
        assert response.status_code == 422

    def test_distribute(self, client):
        response = client.post('/planning/engine/distribute', json={
            'start_date': '2024-03-01', 'duration_days': 5, 'total_quantity': 17,
            'calendar': {'weekends_excluded': False},
        })
        data = response.get_json()

        assert response.status_code == 200
        assert [d['quantity'] for d in data['schedule']] == [4, 4, 3, 3, 3]
        assert data['dropped_quantity'] == 0

    def test_distribute_invalid_duration(self, client):
        response = client.post('/planning/engine/distribute', json={
            'start_date': '2024-03-01', 'duration_days': 0, 'total_quantity': 17,
        })
        assert response.status_code == 400

    def test_edit_applied(self, client):
        response = client.post('/planning/engine/edit', json={
            'schedule': [{'date': '2024-04-01', 'quantity': 100}, {'date': '2024-04-02', 'quantity': 100}],
            'date': '2024-04-01', 'quantity': 50, 'target_total': 150,
        })
        data = response.get_json()

        assert response.status_code == 200
        assert data['outcome']['schedule'] == [
            {'date': '2024-04-01', 'quantity': 50},
            {'date': '2024-04-02', 'quantity': 100},
        ]

    def test_edit_needs_confirmation(self, client):
        body = {
            'schedule': [{'date': '2024-05-03', 'quantity': 200}],
            'date': '2024-05-03', 'quantity': 150, 'target_total': 200,
        }
        response = client.post('/planning/engine/edit', json=body)
        assert response.status_code == 409
        assert response.get_json()['outcome']['proposed_date'] == '2024-05-06'

        response = client.post('/planning/engine/edit', json=dict(body, confirm_create_day=False))
        data = response.get_json()
        assert response.status_code == 200
        assert data['outcome']['status'] == 'reverted'
        assert data['outcome']['schedule'] == [{'date': '2024-05-03', 'quantity': 200}]

    def test_project(self, client):
        response = client.post('/planning/engine/project', json={
            'schedule': [{'date': '2024-02-15', 'quantity': 550}, {'date': '2024-02-16', 'quantity': 49}],
            'level': 'lot',
        })
        data = response.get_json()

        assert data['editable'] is False
        assert data['schedule'] == [{'date': '2024-02-15', 'quantity': 6}]


# ==============================================================================
# INPUT BOUNDARY
# ==============================================================================

class TestInputValidation:
    """Tests for payload values that must be rejected rather than coerced."""

    def test_timeline_past_last_date(self, client):
        response = client.put('/planning/timeline', json={
            'start_date': '9999-12-30', 'duration_days': 5, 'total_quantity': 10,
        })
        assert response.status_code == 422
        assert 'error' in response.get_json()

    def test_engine_distribute_past_last_date(self, client):
        response = client.post('/planning/engine/distribute', json={
            'start_date': '9999-12-30', 'duration_days': 5, 'total_quantity': 10,
            'calendar': {'weekends_excluded': False},
        })
        assert response.status_code == 422

    def test_dependents_past_last_date_leave_session_unchanged(self, client):
        # The strip fits, but finishing and packing land after the last date
        response = client.put('/planning/timeline', json={
            'start_date': '9999-12-30', 'duration_days': 2, 'total_quantity': 10,
        })
        assert response.status_code == 422

        timeline = client.get('/planning/state').get_json()['state']['timeline']
        assert timeline['start_date'] == '2024-02-15'

    def test_calendar_flag_must_be_boolean(self, client):
        response = client.put('/planning/calendar', json={'weekends_excluded': 'false', 'holidays': []})

        assert response.status_code == 400
        state = client.get('/planning/state').get_json()['state']
        assert state['calendar']['weekends_excluded'] is True

    def test_engine_calendar_flag_must_be_boolean(self, client):
        response = client.post('/planning/engine/derive', json={
            'primary': [{'date': '2024-02-16', 'quantity': 10}],
            'offset_working_days': 1,
            'calendar': {'weekends_excluded': 'false'},
        })
        assert response.status_code == 400

    def test_fractional_offset_rejected(self, client):
        response = client.put('/planning/processes/3/offset', json={'offset_working_days': 2.9})

        assert response.status_code == 400
        state = client.get('/planning/state').get_json()
        assert process_by_id(state, '3')['offset_working_days'] == 2

    def test_integral_offset_forms_accepted(self, client):
        response = client.put('/planning/processes/3/offset', json={'offset_working_days': 1.0})
        assert process_by_id(response.get_json(), '3')['offset_working_days'] == 1

        response = client.put('/planning/processes/3/offset', json={'offset_working_days': '-1'})
        assert process_by_id(response.get_json(), '3')['offset_working_days'] == -1

    def test_fractional_delta_rejected(self, client):
        response = client.post('/planning/timeline/adjust', json={'mode': 'move', 'delta_days': 0.5})
        assert response.status_code == 400
