import base64
import io
import json
import logging
import re
import time
import zipfile
from dataclasses import dataclass, field
from typing import Dict, List

logger = logging.getLogger('deploy-bundle')

VALID_PROJECT_NAME = re.compile(r'^[a-z0-9]([a-z0-9-]*[a-z0-9])?$')
MIN_PROJECT_NAME_LENGTH = 3
MAX_PROJECT_NAME_LENGTH = 63

REDIRECTS_FILE = '_redirects'
SPA_REDIRECT_RULE = '/*    /index.html   200'

_STYLESHEET_LINK_RE = re.compile(r'<link[^>]*stylesheet', re.IGNORECASE)
_SCRIPT_SRC_RE = re.compile(r'<script[^>]*\ssrc\s*=', re.IGNORECASE)


@dataclass(frozen=True)
class DeploymentDescriptor:
    project_name: str
    files: Dict[str, str] = field(default_factory=dict)


def fallback_project_name() -> str:
    return 'webcraft-site-%d' % int(time.time() * 1000)


def is_valid_project_name(name: str) -> bool:
    if not name or not name.strip():
        return False
    return (MIN_PROJECT_NAME_LENGTH <= len(name) <= MAX_PROJECT_NAME_LENGTH
            and VALID_PROJECT_NAME.fullmatch(name) is not None)


def sanitize_project_name(name: str) -> str:
    """Turn a free-form title into a hosting-safe slug, or a generated one."""
    if not name or not name.strip():
        return fallback_project_name()

    slug = re.sub(r'[^a-z0-9\s-]', '', name.lower())
    slug = re.sub(r'\s+', '-', slug)
    slug = re.sub(r'-+', '-', slug).strip('-')

    if len(slug) > MAX_PROJECT_NAME_LENGTH:
        slug = slug[:MAX_PROJECT_NAME_LENGTH].rstrip('-')

    if len(slug) < MIN_PROJECT_NAME_LENGTH:
        return fallback_project_name()
    return slug


def _insert_before(html: str, marker: str, snippet: str) -> str:
    idx = html.lower().rfind(marker)
    if idx == -1:
        return html
    return html[:idx] + snippet + html[idx:]


def _insert_after(html: str, marker: str, snippet: str) -> str:
    idx = html.lower().find(marker)
    if idx == -1:
        return html
    end = idx + len(marker)
    return html[:end] + snippet + html[end:]


def has_stylesheet_link(html: str) -> bool:
    return 'styles.css' in html or _STYLESHEET_LINK_RE.search(html) is not None


def has_script_link(html: str) -> bool:
    return 'script.js' in html or _SCRIPT_SRC_RE.search(html) is not None


def link_assets(html: str, css: str, js: str) -> str:
    """Make sure the page pulls in styles.css and script.js as external files."""
    if not html or not html.strip():
        return html

    processed = html
    if css and css.strip() and not has_stylesheet_link(processed):
        if '</head>' in processed.lower():
            processed = _insert_before(processed, '</head>', '    <link rel="stylesheet" href="styles.css">\n')
            logger.info('Added stylesheet link to HTML')
        elif '<head>' in processed.lower():
            processed = _insert_after(processed, '<head>', '\n    <link rel="stylesheet" href="styles.css">')
            logger.info('Added stylesheet link after <head>')

    if js and js.strip() and not has_script_link(processed):
        if '</body>' in processed.lower():
            processed = _insert_before(processed, '</body>', '    <script src="script.js"></script>\n')
            logger.info('Added script tag to HTML')
        elif '</html>' in processed.lower():
            processed = _insert_before(processed, '</html>', '\n    <script src="script.js"></script>\n')
            logger.info('Added script tag before </html>')
    return processed


def build_descriptor(html: str, css: str, js: str, project_name: str) -> DeploymentDescriptor:
    if not html or not html.strip():
        raise ValueError('HTML content cannot be empty')
    css = css or ''
    js = js or ''

    files = {'index.html': link_assets(html, css, js)}
    if css.strip():
        files['styles.css'] = css
    if js.strip():
        files['script.js'] = js
    files[REDIRECTS_FILE] = SPA_REDIRECT_RULE
    return DeploymentDescriptor(project_name=project_name, files=files)


def create_zip(descriptor: DeploymentDescriptor) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, 'w', zipfile.ZIP_DEFLATED) as zf:
        for name, content in descriptor.files.items():
            zf.writestr(name, content.encode('utf-8'))
            logger.info('Added %s to ZIP (%d bytes)', name, len(content))
    data = buf.getvalue()
    logger.info('Created deployment ZIP with size: %d bytes', len(data))
    return data


def _b64(text: str) -> str:
    return base64.b64encode(text.encode('utf-8')).decode('ascii')


def vercel_files(descriptor: DeploymentDescriptor) -> List[Dict[str, str]]:
    files = [
        {'file': name, 'data': _b64(content), 'encoding': 'base64'}
        for name, content in descriptor.files.items()
        if name != REDIRECTS_FILE
    ]
    if REDIRECTS_FILE in descriptor.files:
        rewrites = {'rewrites': [{'source': '/(.*)', 'destination': '/index.html'}]}
        files.append({'file': 'vercel.json', 'data': _b64(json.dumps(rewrites)), 'encoding': 'base64'})
    return files
