"""
팝오버 API 테스트
"""
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.template import Context, Template
from django.test import TestCase, RequestFactory
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from api.models_popover import Popover
from api.services.popover_analytics import issue_tracking_token

User = get_user_model()

TRACK_URL = '/api/popovers/track/'
ACTIVE_URL = '/api/popovers/active/'


class TrackPopoverEventTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.token = issue_tracking_token()
        self.popover = Popover.objects.create(title='Survey', post_status='publish')

    def test_view(self):
        response = self.client.post(TRACK_URL, {
            'event': 'view', 'nonce': self.token, 'popover_id': self.popover.id
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])

        self.popover.refresh_from_db()
        self.assertEqual(self.popover.views, 1)

    def test_legacy_action_name(self):
        response = self.client.post(TRACK_URL, {
            'action': 'popm_track_dismissal', 'nonce': self.token, 'popover_id': self.popover.id
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.popover.refresh_from_db()
        self.assertEqual(self.popover.dismissals, 1)

    def test_close_json(self):
        response = self.client.post(TRACK_URL, {
            'event': 'close', 'nonce': self.token, 'popover_id': self.popover.id, 'duration': 12.25
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.popover.refresh_from_db()
        self.assertEqual((self.popover.engaged, self.popover.bounced), (1, 0))

    def test_close_with_malformed_duration_is_bounced(self):
        for duration in (True, [1], {'a': 1}, 'soon', None):
            response = self.client.post(TRACK_URL, {
                'event': 'close', 'nonce': self.token, 'popover_id': self.popover.id, 'duration': duration
            }, format='json')
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertTrue(response.data['success'])

        response = self.client.post(TRACK_URL, {
            'event': 'close', 'nonce': self.token, 'popover_id': self.popover.id, 'duration': 'garbage'
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        self.popover.refresh_from_db()
        self.assertEqual((self.popover.engaged, self.popover.bounced), (0, 6))

    def test_close_sets_dismissal_cookie(self):
        cookie_name = f'popm_dismissed_{self.popover.id}'

        response = self.client.post(TRACK_URL, {
            'event': 'view', 'nonce': self.token, 'popover_id': self.popover.id
        })
        self.assertNotIn(cookie_name, response.cookies)

        response = self.client.post(TRACK_URL, {
            'event': 'close', 'nonce': self.token, 'popover_id': self.popover.id, 'duration': 1
        })
        morsel = response.cookies[cookie_name]
        self.assertEqual(morsel.value, '1')
        self.assertEqual(morsel['max-age'], 7 * 86400)
        self.assertEqual(morsel['samesite'], 'Lax')

    def test_zero_cookie_days_sets_no_cookie(self):
        Popover.objects.filter(pk=self.popover.pk).update(cookie_days=0)
        response = self.client.post(TRACK_URL, {
            'action': 'popm_track_dismissal', 'nonce': self.token, 'popover_id': self.popover.id
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn(f'popm_dismissed_{self.popover.id}', response.cookies)

    def test_invalid_nonce(self):
        for event in ('view', 'dismissal', 'close'):
            response = self.client.post(TRACK_URL, {
                'event': event, 'nonce': 'forged', 'popover_id': self.popover.id, 'duration': 9
            })
            self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
            self.assertFalse(response.data['success'])

        self.popover.refresh_from_db()
        self.assertEqual(
            (self.popover.views, self.popover.dismissals, self.popover.engaged, self.popover.bounced),
            (0, 0, 0, 0)
        )

    def test_missing_nonce(self):
        response = self.client.post(TRACK_URL, {'event': 'view', 'popover_id': self.popover.id})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_popover(self):
        response = self.client.post(TRACK_URL, {
            'event': 'view', 'nonce': self.token, 'popover_id': 424242
        })
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['data'], 'Invalid popover')

    def test_get_not_allowed(self):
        response = self.client.get(TRACK_URL)
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)


class ActivePopoverTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.home = Popover.objects.create(
            title='Home only', post_status='publish', display_location='homepage', priority=50,
            form_url='https://docs.google.com/forms/d/e/abc/viewform?embedded=true',
        )
        self.everywhere = Popover.objects.create(
            title='Everywhere', post_status='publish', display_location='all', priority=10,
            cookie_days=3,
        )

    def test_front_page(self):
        response = self.client.get(ACTIVE_URL, {'page_type': 'front_page'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['popover']['id'], self.home.id)
        self.assertEqual(response.data['popover']['layout_class'], 'popm-layout-form-only')
        self.assertEqual(response.data['tracking']['popoverId'], self.home.id)
        self.assertTrue(response.data['tracking']['ajaxUrl'].endswith(TRACK_URL))
        self.assertIn(f'data-popover-id="{self.home.id}"', response.data['html'])
        self.assertIn('popm-close', response.data['html'])

    def test_generic_home_route(self):
        response = self.client.get(ACTIVE_URL, {'page_type': 'home'})
        self.assertEqual(response.data['popover']['id'], self.everywhere.id)

    def test_tracking_nonce_is_accepted(self):
        response = self.client.get(ACTIVE_URL, {'page_type': 'post'})
        tracking = response.data['tracking']

        track = self.client.post(TRACK_URL, {
            'event': 'view', 'nonce': tracking['nonce'], 'popover_id': tracking['popoverId']
        })
        self.assertEqual(track.status_code, status.HTTP_200_OK)

    def test_dismissal_cookie(self):
        self.client.cookies[f'popm_dismissed_{self.everywhere.id}'] = '1'
        response = self.client.get(ACTIVE_URL, {'page_type': 'page'})
        self.assertIsNone(response.data['popover'])

    def test_preview_returns_nothing(self):
        response = self.client.get(ACTIVE_URL, {'page_type': 'front_page', 'preview': 'true'})
        self.assertIsNone(response.data['popover'])

    def test_expired_and_invalid_ranges(self):
        now = timezone.now()
        Popover.objects.filter(pk=self.home.pk).update(end_date=now - timedelta(days=1))
        Popover.objects.filter(pk=self.everywhere.pk).update(
            start_date=now - timedelta(days=1), end_date=now - timedelta(days=2)
        )
        response = self.client.get(ACTIVE_URL, {'page_type': 'front_page'})
        self.assertIsNone(response.data['popover'])


class PopoverTemplateTagTestCase(TestCase):

    def test_renders_markup(self):
        popover = Popover.objects.create(title='Tagged', post_status='publish', cookie_days=0)
        request = RequestFactory().get('/', {'page_type': 'post'})
        html = Template('{% load popover_tags %}{% active_popover %}').render(Context({'request': request}))

        self.assertIn(f'data-popover-id="{popover.id}"', html)
        self.assertIn('data-cookie-days="0"', html)
        self.assertIn('popm-data', html)

    def test_renders_nothing_without_match(self):
        Popover.objects.create(title='Posts', post_status='publish', display_location='posts')
        request = RequestFactory().get('/')
        html = Template('{% load popover_tags %}{% active_popover "page" %}').render(Context({'request': request}))
        self.assertEqual(html.strip(), '')


class PopoverAdminApiTestCase(TestCase):

    def setUp(self):
        self.client = APIClient()
        self.staff = User.objects.create_user(username='editor', password='testpass', is_staff=True)
        self.visitor = User.objects.create_user(username='visitor', password='testpass')

    def test_requires_staff(self):
        response = self.client.get('/api/popovers/')
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

        self.client.force_authenticate(user=self.visitor)
        response = self.client.get('/api/popovers/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_create_clamps_values(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post('/api/popovers/', {
            'title': 'Clamped',
            'post_status': 'publish',
            'priority': 5000,
            'cookie_days': -4,
            'display_location': 'sidebar',
            'width': '  ',
            'views': 100,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['priority'], 999)
        self.assertEqual(response.data['cookie_days'], 0)
        self.assertEqual(response.data['display_location'], 'all')
        self.assertEqual(response.data['width'], '900px')
        self.assertEqual(response.data['views'], 0)
        self.assertEqual(response.data['warnings'], [])

        popover = Popover.objects.get(pk=response.data['id'])
        self.assertEqual(popover.author, self.staff)

    def test_unparseable_numbers_use_leading_integer(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post('/api/popovers/', {
            'title': 'Defaults', 'priority': 'high', 'cookie_days': '400'
        }, format='json')
        self.assertEqual(response.data['priority'], 0)
        self.assertEqual(response.data['cookie_days'], 365)

        response = self.client.post('/api/popovers/', {
            'title': 'Partial', 'priority': '40 or so', 'cookie_days': 'abc'
        }, format='json')
        self.assertEqual(response.data['priority'], 40)
        self.assertEqual(response.data['cookie_days'], 0)

        response = self.client.post('/api/popovers/', {'title': 'Omitted'}, format='json')
        self.assertEqual((response.data['priority'], response.data['cookie_days']), (10, 7))

    def test_invalid_dates_warning(self):
        self.client.force_authenticate(user=self.staff)
        response = self.client.post('/api/popovers/', {
            'title': 'Backwards',
            'start_date': '2025-01-10T00:00:00Z',
            'end_date': '2025-01-01T00:00:00Z',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['warnings'], ['invalid_dates'])
        self.assertTrue(response.data['has_invalid_dates'])

        response = self.client.patch(f"/api/popovers/{response.data['id']}/", {
            'end_date': '2025-02-01T00:00:00Z',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['warnings'], [])

    def test_filter_and_stats(self):
        self.client.force_authenticate(user=self.staff)
        published = Popover.objects.create(title='Live', post_status='publish', views=4, dismissals=1)
        Popover.objects.create(title='Hidden', post_status='draft')

        response = self.client.get('/api/popovers/', {'post_status': 'publish'})
        self.assertEqual([item['id'] for item in response.data], [published.id])
        self.assertEqual(response.data[0]['status'], 'active')

        response = self.client.get(f'/api/popovers/{published.id}/stats/')
        self.assertEqual(response.data['views'], 4)
        self.assertEqual(response.data['dismissal_rate'], 25.0)

    def test_delete(self):
        self.client.force_authenticate(user=self.staff)
        popover = Popover.objects.create(title='Gone', views=3)
        response = self.client.delete(f'/api/popovers/{popover.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Popover.objects.filter(pk=popover.id).exists())


class HealthCheckTestCase(TestCase):

    def test_health(self):
        Popover.objects.create(title='Live', post_status='publish')
        response = APIClient().get('/api/health/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['published_popovers'], 1)
