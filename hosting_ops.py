import logging
import os
import time
from typing import Any, Dict, Optional

import requests

from deploy_bundle import DeploymentDescriptor, build_descriptor, create_zip, vercel_files

logger = logging.getLogger('hosting-ops')

NETLIFY_API = 'https://api.netlify.com/api/v1'
VERCEL_API = 'https://api.vercel.com'
USER_AGENT = 'WebCraft/1.0'

BROWSER_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
}

MINIMAL_HTML = (
    '<!DOCTYPE html>\n'
    '<html lang="en">\n'
    '<head>\n'
    '    <meta charset="UTF-8">\n'
    '    <title>Test</title>\n'
    '</head>\n'
    '<body>\n'
    '    <h1>Test Deployment</h1>\n'
    '</body>\n'
    '</html>'
)


class HostingError(RuntimeError):
    """Provider call failed; keeps the HTTP status and body for diagnostics."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ''):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _https(url: str) -> str:
    if url.startswith('http://'):
        return 'https://' + url[len('http://'):]
    if not url.startswith('https://'):
        return 'https://' + url
    return url


def _raise_for_provider(resp: requests.Response, provider: str):
    if resp.status_code >= 400:
        body = resp.text or ''
        logger.error('%s API error: %s - %s', provider, resp.status_code, body[:1000])
        raise HostingError(f'{provider} API error: {resp.status_code} - {body[:500]}',
                           status_code=resp.status_code, body=body)


def _provider_json(resp: requests.Response, provider: str):
    try:
        return resp.json()
    except ValueError as e:
        body = resp.text or ''
        logger.error('%s returned a non-JSON body: %s', provider, body[:1000])
        raise HostingError(f'{provider} returned a non-JSON body (status {resp.status_code})',
                           status_code=resp.status_code, body=body) from e


class HostingOps:
    """Common plumbing for static-hosting providers.

    Subclasses set ``name``, ``token_env`` and polling defaults and implement
    ``deploy(descriptor)`` and ``run_diagnostics()``.
    """

    name = ''
    token_env = ''
    default_poll_interval = 2.0
    default_poll_attempts = 10

    def __init__(self, token: str = None, poll_interval: float = None, poll_attempts: int = None):
        self.token = token if token is not None else os.environ.get(self.token_env, '')
        prefix = self.token_env.replace('_TOKEN', '')
        if poll_interval is None:
            poll_interval = float(os.environ.get(f'{prefix}_POLL_INTERVAL', self.default_poll_interval))
        if poll_attempts is None:
            poll_attempts = int(os.environ.get(f'{prefix}_POLL_ATTEMPTS', self.default_poll_attempts))
        self.poll_interval = poll_interval
        self.poll_attempts = poll_attempts

    @property
    def is_configured(self) -> bool:
        return bool(self.token and self.token.strip())

    def _auth_headers(self, user_agent: str = USER_AGENT) -> Dict[str, str]:
        return {'Authorization': f'Bearer {self.token}', 'User-Agent': user_agent}

    def check_site_accessible(self, url: str) -> bool:
        try:
            r = requests.get(url, headers=BROWSER_HEADERS, timeout=10)
        except requests.RequestException as e:
            logger.warning('Site accessibility test - network error for %s: %s', url, e)
            return False
        accessible = 200 <= r.status_code < 300
        logger.info('Site accessibility test for %s: %s (status %s)', url, 'PASSED' if accessible else 'FAILED', r.status_code)
        return accessible

    def wait_until_accessible(self, url: str) -> bool:
        for attempt in range(self.poll_attempts):
            time.sleep(self.poll_interval)
            if self.check_site_accessible(url):
                logger.info('Deployment is accessible after %d attempts', attempt + 1)
                return True
        logger.warning('Deployment may not be fully accessible yet after %d attempts', self.poll_attempts)
        return False

    def deploy_site(self, html: str, css: str, js: str, project_name: str) -> str:
        if not self.is_configured:
            raise RuntimeError(f'{self.name} token is not configured')
        descriptor = build_descriptor(html, css, js, project_name)
        logger.info('Starting %s deployment for project: %s', self.name, project_name)
        url = self.deploy(descriptor)
        if not url:
            raise HostingError(f'Deployment failed - no URL returned from {self.name}')
        logger.info('Deployment successful: %s', url)
        return url

    def deploy(self, descriptor: DeploymentDescriptor) -> str:
        raise NotImplementedError

    def run_diagnostics(self) -> Dict[str, Any]:
        raise NotImplementedError


class NetlifyOps(HostingOps):
    """Deploys a ZIP bundle as a new Netlify site."""

    name = 'Netlify'
    token_env = 'NETLIFY_TOKEN'
    default_poll_interval = 2.0
    default_poll_attempts = 10

    def _upload_zip(self, data: bytes, user_agent: str = USER_AGENT) -> Dict[str, Any]:
        headers = self._auth_headers(user_agent)
        headers.update({'Content-Type': 'application/zip', 'Cache-Control': 'no-cache'})
        r = requests.post(f'{NETLIFY_API}/sites', headers=headers, data=data, timeout=60)
        _raise_for_provider(r, self.name)
        return _provider_json(r, self.name)

    def deploy(self, descriptor: DeploymentDescriptor) -> str:
        logger.info('Sending deployment request to Netlify...')
        site = self._upload_zip(create_zip(descriptor))
        url = site.get('ssl_url') or site.get('url')
        if not url:
            logger.error('Unexpected response from Netlify: %s', site)
            return ''
        url = _https(url)
        logger.info('Site created with ID: %s, URL: %s', site.get('id'), url)
        self.wait_until_accessible(url)
        return url

    def _get(self, path: str):
        r = requests.get(f'{NETLIFY_API}{path}', headers=self._auth_headers('WebCraft-Diagnostic/1.0'), timeout=15)
        _raise_for_provider(r, self.name)
        return r.json()

    def test_token(self) -> bool:
        try:
            self._get('/user')
        except (HostingError, requests.RequestException, ValueError):
            logger.exception('Token validity test failed')
            return False
        logger.info('Token validity test: PASSED')
        return True

    def test_minimal_deployment(self) -> Optional[str]:
        descriptor = DeploymentDescriptor(project_name='webcraft-diagnostic', files={'index.html': MINIMAL_HTML})
        try:
            site = self._upload_zip(create_zip(descriptor), 'WebCraft-Diagnostic/1.0')
        except (HostingError, requests.RequestException, ValueError):
            logger.exception('Test deployment failed')
            return None
        url = site.get('url')
        return _https(url) if url else None

    @staticmethod
    def site_id_from_url(url: str) -> Optional[str]:
        domain = url.replace('https://', '').replace('http://', '')
        first = domain.split('.')[0]
        if not first:
            return None
        return first.split('--')[0]

    def error_details(self, url: str) -> Dict[str, Any]:
        info: Dict[str, Any] = {}
        for method in ('GET', 'HEAD', 'OPTIONS'):
            try:
                r = requests.request(method, url, headers={'User-Agent': 'WebCraft-Diagnostic/1.0'}, timeout=10)
                info[f'{method}_status'] = r.status_code
                info[f'{method}_headers'] = dict(r.headers)
                if r.status_code >= 400:
                    info[f'{method}_error_body'] = (r.text or '')[:1000]
            except requests.RequestException as e:
                info[f'{method}_error'] = str(e)
        site_id = self.site_id_from_url(url)
        if site_id:
            try:
                info['netlify_site_info'] = self._get(f'/sites/{site_id}')
            except (HostingError, requests.RequestException, ValueError) as e:
                info['netlify_site_info'] = {'error': str(e)}
        return info

    def run_diagnostics(self) -> Dict[str, Any]:
        diagnostics: Dict[str, Any] = {}
        if not self.is_configured:
            diagnostics['tokenValid'] = False
            diagnostics['error'] = 'Netlify token is not configured'
            return diagnostics
        try:
            valid = self.test_token()
            diagnostics['tokenValid'] = valid
            if not valid:
                return diagnostics
            try:
                diagnostics['accountInfo'] = self._get('/user')
            except (HostingError, requests.RequestException, ValueError):
                diagnostics['accountInfo'] = {}
            try:
                diagnostics['existingSites'] = self._get('/sites')
            except (HostingError, requests.RequestException, ValueError):
                diagnostics['existingSites'] = 'Failed to retrieve'
            test_url = self.test_minimal_deployment()
            diagnostics['testDeploymentUrl'] = test_url
            if test_url:
                accessible = self.check_site_accessible(test_url)
                diagnostics['siteAccessible'] = accessible
                if not accessible:
                    diagnostics['errorDetails'] = self.error_details(test_url)
        except Exception as e:
            logger.exception('Diagnostic error')
            diagnostics['diagnosticError'] = str(e)
        return diagnostics


class VercelOps(HostingOps):
    """Deploys base64-encoded files through the Vercel deployments API."""

    name = 'Vercel'
    token_env = 'VERCEL_TOKEN'
    default_poll_interval = 5.0
    default_poll_attempts = 12

    def deploy(self, descriptor: DeploymentDescriptor) -> str:
        payload = {
            'name': descriptor.project_name,
            'target': 'production',
            'public': True,
            'files': vercel_files(descriptor),
            'projectSettings': {'framework': None},
        }
        headers = self._auth_headers('WebCraft-Static-Deployment/1.0')
        logger.info('Sending deployment request to Vercel with %d files', len(payload['files']))
        r = requests.post(f'{VERCEL_API}/v13/deployments', headers=headers, json=payload, timeout=60)
        _raise_for_provider(r, self.name)
        body = _provider_json(r, self.name) or {}

        deployment_id = body.get('id')
        if not deployment_id:
            raise HostingError('No deployment ID received from Vercel', status_code=r.status_code, body=r.text)
        logger.info('Deployment created with ID: %s', deployment_id)

        if body.get('url'):
            return _https(body['url'])
        aliases = body.get('alias') or []
        if aliases:
            return _https(aliases[0])
        return self.wait_for_ready(deployment_id)

    def wait_for_ready(self, deployment_id: str) -> str:
        url = f'{VERCEL_API}/v13/deployments/{deployment_id}'
        logger.info('Waiting for deployment %s to complete...', deployment_id)
        for attempt in range(self.poll_attempts):
            time.sleep(self.poll_interval)
            try:
                r = requests.get(url, headers=self._auth_headers(), timeout=15)
                if r.status_code != 200:
                    logger.warning('Deployment status returned %s (attempt %d/%d)', r.status_code, attempt + 1, self.poll_attempts)
                    continue
                body = r.json() or {}
            except (requests.RequestException, ValueError) as e:
                logger.warning('Error checking deployment status (attempt %d/%d): %s', attempt + 1, self.poll_attempts, e)
                continue

            state = body.get('readyState') or body.get('state')
            logger.info('Deployment %s state: %s (attempt %d/%d)', deployment_id, state, attempt + 1, self.poll_attempts)
            if state == 'READY':
                return _https(body['url']) if body.get('url') else f'https://{deployment_id}.vercel.app'
            if state in ('ERROR', 'CANCELED'):
                logger.error('Deployment failed with state %s: %s', state, body.get('error'))
                raise HostingError(f'Deployment failed with state: {state}', status_code=r.status_code, body=r.text)

        fallback = f'https://{deployment_id}.vercel.app'
        logger.warning('Deployment status check timeout. Using fallback URL: %s', fallback)
        return fallback

    def run_diagnostics(self) -> Dict[str, Any]:
        diagnostics: Dict[str, Any] = {}
        if not self.is_configured:
            diagnostics['tokenValid'] = False
            diagnostics['error'] = 'Vercel token is not configured'
            return diagnostics
        try:
            r = requests.get(f'{VERCEL_API}/v2/user', headers=self._auth_headers('WebCraft-Diagnostic/1.0'), timeout=15)
            diagnostics['tokenValid'] = r.status_code == 200
            if r.status_code == 200:
                diagnostics['accountInfo'] = r.json().get('user', {})
            else:
                diagnostics['error'] = (r.text or '')[:1000]
        except Exception as e:
            logger.exception('Diagnostic error')
            diagnostics['diagnosticError'] = str(e)
        return diagnostics


PROVIDERS = {'netlify': NetlifyOps, 'vercel': VercelOps}


def get_hosting_ops(provider: str = None) -> HostingOps:
    name = (provider or os.environ.get('HOSTING_PROVIDER') or 'netlify').strip().lower()
    if name not in PROVIDERS:
        raise ValueError(f'Unknown hosting provider: {name}')
    return PROVIDERS[name]()
