# Overview: Pytest coverage for the JSON API and its authentication guards.

"""
API Route Tests

Exercises the HTTP surface end to end through the Flask test client:
authentication, farmer and cycle endpoints, the manual and scheduled
sync triggers, and the dashboard summary.
"""

import pytest

from conftest import CRON_SECRET, auth_headers, make_cycle, make_farmer


@pytest.fixture
def headers_a(user_a):
    return auth_headers(user_a.api_token)


@pytest.fixture
def headers_b(user_b):
    return auth_headers(user_b.api_token)


class TestPublicEndpoints:
    def test_health(self, client, db_session):
        response = client.get('/api/health')

        assert response.status_code == 200
        assert response.json['status'] == 'healthy'
        assert response.json['checks']['database']['status'] == 'healthy'

    def test_feed_schedule(self, client):
        response = client.get('/api/feed/schedule')

        assert response.status_code == 200
        assert response.json['grams_per_bag'] == 50000
        assert response.json['plateau_day'] == 34
        assert len(response.json['days']) == 34
        assert response.json['days'][4] == {
            'day': 5, 'grams_per_bird': 32, 'cumulative_grams_per_bird': 120,
        }


class TestAuthentication:
    def test_missing_token(self, client, db_session):
        response = client.get('/api/farmers')
        assert response.status_code == 401
        assert response.json['error'] == 'Authentication required'

    def test_unknown_token(self, client, db_session):
        response = client.get('/api/cycles', headers=auth_headers('not-a-token'))
        assert response.status_code == 401
        assert response.json['error'] == 'Invalid token'

    def test_token_is_not_exposed(self, user_a):
        assert 'api_token' not in user_a.to_dict()


class TestFarmerRoutes:
    def test_create_and_stock(self, client, headers_a):
        response = client.post('/api/farmers', json={'name': 'Rahim Uddin'}, headers=headers_a)
        assert response.status_code == 201
        farmer = response.json['farmer']
        assert farmer['name'] == 'rahim uddin'

        response = client.post(
            f"/api/farmers/{farmer['id']}/stock",
            json={'amount': 50, 'note': 'Truck 3'},
            headers=headers_a,
        )
        assert response.status_code == 201
        assert response.json['farmer']['main_stock_input'] == 50
        assert response.json['farmer']['main_stock_remaining'] == 50

        response = client.get(f"/api/farmers/{farmer['id']}/logs", headers=headers_a)
        assert response.status_code == 200
        assert [entry['type'] for entry in response.json['logs']] == ['STOCK_ADD']
        assert response.json['logs'][0]['note'] == 'Truck 3'

    def test_duplicate_name(self, client, headers_a):
        client.post('/api/farmers', json={'name': 'Karim'}, headers=headers_a)
        response = client.post('/api/farmers', json={'name': 'karim'}, headers=headers_a)
        assert response.status_code == 409

    def test_stock_fields_not_writable(self, client, headers_a):
        response = client.post(
            '/api/farmers',
            json={'name': 'Karim', 'main_stock_remaining': 1000},
            headers=headers_a,
        )
        assert response.status_code == 400
        assert 'Field not allowed' in response.json['error']

    def test_bad_stock_amount(self, client, headers_a, db_session, user_a):
        farmer = make_farmer(db_session, user_a)
        response = client.post(f'/api/farmers/{farmer.id}/stock', json={'amount': 'lots'}, headers=headers_a)
        assert response.status_code == 400

    @pytest.mark.parametrize("body", [
        '{"amount": "inf"}',
        '{"amount": "nan"}',
        '{"amount": Infinity}',
        '{"amount": NaN}',
    ])
    def test_non_finite_stock_amount(self, client, headers_a, db_session, user_a, body):
        farmer = make_farmer(db_session, user_a)

        response = client.post(f'/api/farmers/{farmer.id}/stock', data=body,
                               content_type='application/json', headers=headers_a)

        assert response.status_code == 400
        db_session.refresh(farmer)
        assert farmer.main_stock_input == pytest.approx(100.0)
        assert farmer.main_stock_remaining == pytest.approx(100.0)

    def test_other_tenant_gets_404(self, client, headers_b, db_session, user_a):
        farmer = make_farmer(db_session, user_a)
        assert client.get(f'/api/farmers/{farmer.id}', headers=headers_b).status_code == 404
        response = client.post(f'/api/farmers/{farmer.id}/stock', json={'amount': 5}, headers=headers_b)
        assert response.status_code == 404

    def test_list(self, client, headers_a, db_session, user_a, user_b):
        make_farmer(db_session, user_a, name="alpha")
        make_farmer(db_session, user_b, name="bravo")

        response = client.get('/api/farmers?search=alp', headers=headers_a)

        assert response.status_code == 200
        assert [f['name'] for f in response.json['items']] == ['alpha']
        assert response.json['total'] == 1


class TestCycleRoutes:
    def test_full_lifecycle(self, client, headers_a, db_session, user_a):
        farmer = make_farmer(db_session, user_a, stock=50.0)

        response = client.post(
            '/api/cycles',
            json={'doc': 1000, 'age': 5, 'farmer_id': farmer.id},
            headers=headers_a,
        )
        assert response.status_code == 201
        cycle = response.json['cycle']
        assert cycle['age'] == 5
        assert cycle['intake'] == pytest.approx(2.4)
        assert cycle['status'] == 'active'

        response = client.get(f"/api/cycles/{cycle['id']}", headers=headers_a)
        assert response.status_code == 200
        assert response.json['cycle']['stock_remaining'] == pytest.approx(47.6)
        assert len(response.json['logs']) == 2

        response = client.post(
            f"/api/cycles/{cycle['id']}/mortality",
            json={'amount': 10, 'reason': 'culled'},
            headers=headers_a,
        )
        assert response.status_code == 201
        assert response.json['cycle']['mortality'] == 10
        assert response.json['cycle']['live_birds'] == 990

        assert client.delete(f"/api/cycles/{cycle['id']}", headers=headers_a).status_code == 409

        response = client.post(f"/api/cycles/{cycle['id']}/end", headers=headers_a)
        assert response.status_code == 200
        assert response.json['cycle']['status'] == 'archived'
        assert response.json['cycle']['end_date'] is not None

        assert client.post(f"/api/cycles/{cycle['id']}/end", headers=headers_a).status_code == 409

        response = client.delete(f"/api/cycles/{cycle['id']}", headers=headers_a)
        assert response.status_code == 200
        assert response.json == {'success': True}
        assert client.get(f"/api/cycles/{cycle['id']}", headers=headers_a).status_code == 404

    @pytest.mark.parametrize("payload", [
        {},
        {'doc': 0, 'name': 'batch'},
        {'doc': 1000, 'age': 40, 'name': 'batch'},
        {'doc': 1.5, 'name': 'batch'},
        {'doc': 1000, 'name': 'batch', 'intake': 99},
    ])
    def test_create_rejects_bad_payload(self, client, headers_a, payload):
        response = client.post('/api/cycles', json=payload, headers=headers_a)
        assert response.status_code == 400

    def test_list_filters_by_status(self, client, headers_a, db_session, user_a):
        make_cycle(db_session, user_a, name="live")
        make_cycle(db_session, user_a, name="done", status="archived")

        active = client.get('/api/cycles', headers=headers_a).json
        archived = client.get('/api/cycles?status=archived', headers=headers_a).json

        assert [c['name'] for c in active['items']] == ['live']
        assert [c['name'] for c in archived['items']] == ['done']
        assert client.get('/api/cycles?status=bogus', headers=headers_a).status_code == 400

    def test_other_tenant_cannot_see_cycle(self, client, headers_b, db_session, user_a):
        cycle = make_cycle(db_session, user_a)
        assert client.get(f'/api/cycles/{cycle.id}', headers=headers_b).status_code == 404


class TestSyncRoutes:
    def test_manual_sync_is_user_scoped(self, client, headers_a, db_session, user_a, user_b):
        make_cycle(db_session, user_a, name="mine")
        make_cycle(db_session, user_b, name="theirs")

        response = client.post('/api/feed/sync', headers=headers_a)

        assert response.status_code == 200
        assert response.json['success'] is True
        assert response.json['mode'] == f'user:{user_a.id}'
        assert response.json['updated_count'] + response.json['skipped_count'] == 1
        assert response.json['failures'] == []

    def test_manual_sync_requires_auth(self, client, db_session):
        assert client.post('/api/feed/sync').status_code == 401

    @pytest.mark.parametrize("header", [None, 'Bearer wrong-secret', CRON_SECRET])
    def test_cron_rejects_bad_secret(self, client, db_session, header):
        headers = {'Authorization': header} if header else {}
        response = client.get('/api/cron/update-feed', headers=headers)
        assert response.status_code == 401
        assert response.json['error'] == 'Unauthorized'

    def test_cron_runs_globally(self, client, db_session, user_a, user_b):
        make_cycle(db_session, user_a, name="mine")
        make_cycle(db_session, user_b, name="theirs")

        response = client.post('/api/cron/update-feed', headers=auth_headers(CRON_SECRET))

        assert response.status_code == 200
        assert response.json['mode'] == 'global'
        assert response.json['updated_count'] + response.json['skipped_count'] == 2

    def test_cron_user_filter(self, client, db_session, user_a):
        response = client.get(f'/api/cron/update-feed?user_id={user_a.id}', headers=auth_headers(CRON_SECRET))
        assert response.status_code == 200
        assert response.json['mode'] == f'user:{user_a.id}'

        response = client.get('/api/cron/update-feed?user_id=abc', headers=auth_headers(CRON_SECRET))
        assert response.status_code == 400

    def test_cron_disabled_without_secret(self, app, client, db_session, monkeypatch):
        monkeypatch.setitem(app.config, 'CRON_SECRET', None)
        response = client.get('/api/cron/update-feed', headers=auth_headers(CRON_SECRET))
        assert response.status_code == 401


class TestDashboard:
    def test_summary(self, client, headers_a, db_session, user_a):
        farmer = make_farmer(db_session, user_a, stock=50.0)
        make_farmer(db_session, user_a, name="empty", stock=2.0)
        client.post('/api/cycles', json={'doc': 1000, 'age': 5, 'farmer_id': farmer.id}, headers=headers_a)
        make_cycle(db_session, user_a, name="old", doc=500, mortality=50, status="archived")

        response = client.get('/api/dashboard/summary', headers=headers_a)

        assert response.status_code == 200
        summary = response.json
        assert summary['active_cycles'] == 1
        assert summary['total_live_birds'] == 1000
        assert summary['total_intake_bags'] == pytest.approx(2.4)
        assert summary['total_stock_remaining_bags'] == pytest.approx(49.6)
        assert [f['name'] for f in summary['low_stock_farmers']] == ['empty']
        assert summary['average_mortality_pct'] == 0.0
        assert summary['feed_per_bird_kg'] == pytest.approx(0.12)
