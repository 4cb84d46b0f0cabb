"""
Management command to smoke-test a running API server over HTTP
Usage: python manage.py check_server --base-url http://localhost:8000/api/v1 [--username u --password p]
"""
import time

import requests
from django.core.management.base import BaseCommand, CommandError

AUTHENTICATED_ENDPOINTS = [
    ('Current user', '/auth/me/'),
    ('Sites', '/sites/'),
    ('Projectors', '/projectors/'),
    ('Service visits', '/service-visits/'),
    ('Service reports', '/service-reports/'),
    ('DTRs', '/dtrs/'),
    ('DTR stats', '/dtrs/stats/'),
    ('RMAs', '/rmas/'),
    ('RMA stats', '/rmas/stats/'),
    ('Dashboard KPIs', '/reports/dashboard-kpis/'),
]


class Command(BaseCommand):
    help = 'Check that the API server answers on its health and main list endpoints'

    def add_arguments(self, parser):
        parser.add_argument('--base-url', default='http://localhost:8000/api/v1', help='API root URL')
        parser.add_argument('--username', help='Login used for authenticated endpoints')
        parser.add_argument('--password', help='Password for --username')
        parser.add_argument('--timeout', type=float, default=10, help='Per-request timeout in seconds')

    def handle(self, *args, **options):
        base_url = options['base_url'].rstrip('/')
        timeout = options['timeout']
        session = requests.Session()

        self.stdout.write(f'🔍 Checking {base_url} ...\n')
        status_code, elapsed = self._get(session, f'{base_url}/health/', timeout)
        if status_code != 200:
            raise CommandError(f'❌ Health check failed (status {status_code})')
        self.stdout.write(self.style.SUCCESS(f'✅ Server is up ({elapsed:.0f} ms)'))

        if not options['username']:
            self.stdout.write('No --username given, skipping authenticated endpoints.')
            return

        try:
            response = session.post(
                f'{base_url}/auth/login/',
                json={'username': options['username'], 'password': options['password'] or ''},
                timeout=timeout,
            )
        except requests.exceptions.RequestException as e:
            raise CommandError(f'❌ Login request failed: {str(e)}')
        if response.status_code != 200:
            raise CommandError(f'❌ Authentication failed: {response.status_code} {response.text[:200]}')
        session.headers.update({'Authorization': f"Bearer {response.json().get('access')}"})
        self.stdout.write(self.style.SUCCESS('✅ Authentication successful\n'))

        failures = 0
        for name, endpoint in AUTHENTICATED_ENDPOINTS:
            status_code, elapsed = self._get(session, f'{base_url}{endpoint}', timeout)
            line = f'{name:<18}{endpoint:<28}{status_code:>5}{elapsed:>10.0f} ms'
            if status_code == 200:
                self.stdout.write(self.style.SUCCESS(f'  ✓ {line}'))
            else:
                failures += 1
                self.stdout.write(self.style.ERROR(f'  ✗ {line}'))

        self.stdout.write('')
        if failures:
            raise CommandError(f'{failures} of {len(AUTHENTICATED_ENDPOINTS)} endpoints failed')
        self.stdout.write(self.style.SUCCESS(f'All {len(AUTHENTICATED_ENDPOINTS)} endpoints responded'))

    def _get(self, session, url, timeout):
        """(status code, elapsed ms); status 0 when the request did not complete"""
        start = time.time()
        try:
            response = session.get(url, timeout=timeout)
        except requests.exceptions.RequestException as e:
            self.stdout.write(self.style.ERROR(f'  request to {url} failed: {str(e)}'))
            return 0, (time.time() - start) * 1000
        return response.status_code, (time.time() - start) * 1000
