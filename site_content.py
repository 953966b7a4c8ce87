import logging
import re
from dataclasses import dataclass
from typing import Dict

from response_parser import unescape_content

logger = logging.getLogger('site-content')


@dataclass(frozen=True)
class GenerationResult:
    html: str
    css: str
    js: str

    def to_dict(self) -> Dict[str, str]:
        return {'html': self.html, 'css': self.css, 'js': self.js}


BASELINE_CSS = (
    "body {\n"
    "  font-family: system-ui, -apple-system, 'Segoe UI', Roboto, Arial, sans-serif;\n"
    "  margin: 0;\n"
    "  padding: 0;\n"
    "}\n"
)

HTML_SHELL = (
    "<!DOCTYPE html>\n"
    "<html lang=\"en\">\n"
    "<head>\n"
    "  <meta charset=\"UTF-8\">\n"
    "  <meta name=\"viewport\" content=\"width=device-width, initial-scale=1.0\">\n"
    "  <title>Generated Website</title>\n"
    "</head>\n"
    "<body>\n"
    "%BODY%\n"
    "</body>\n"
    "</html>\n"
)

FALLBACK_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Your Website</title>
</head>
<body>
  <header class="site-header">
    <nav class="nav container">
      <span class="logo">WebCraft</span>
      <ul class="nav-links">
        <li><a href="#about">About</a></li>
        <li><a href="#features">Features</a></li>
        <li><a href="#contact">Contact</a></li>
      </ul>
    </nav>
  </header>
  <main class="container">
    <section class="hero card" id="about">
      <h1>Welcome to Your Website</h1>
      <p class="prompt-echo">Built from your idea: <em>%PROMPT%</em></p>
      <button id="cta-button" class="btn">Get Started</button>
      <p id="hidden-message" class="hidden-message">Thanks for stopping by! Your site is ready to grow.</p>
    </section>
    <section class="features" id="features">
      <div class="card feature-card">
        <h2>Responsive</h2>
        <p>Looks great on phones, tablets and desktops.</p>
      </div>
      <div class="card feature-card">
        <h2>Modern</h2>
        <p>Clean layout with smooth interactions.</p>
      </div>
      <div class="card feature-card">
        <h2>Yours</h2>
        <p>Edit the HTML, CSS and JavaScript to make it your own.</p>
      </div>
    </section>
  </main>
  <footer class="site-footer" id="contact">
    <p>&copy; Your Website. All rights reserved.</p>
  </footer>
</body>
</html>
"""

FALLBACK_CSS = """* {
  box-sizing: border-box;
  margin: 0;
  padding: 0;
}

body {
  font-family: 'Segoe UI', Roboto, Arial, sans-serif;
  line-height: 1.6;
  color: #1f2937;
  min-height: 100vh;
  background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
}

.container {
  max-width: 1100px;
  margin: 0 auto;
  padding: 0 1.5rem;
}

.site-header {
  background: rgba(255, 255, 255, 0.12);
  backdrop-filter: blur(8px);
}

.nav {
  display: flex;
  align-items: center;
  justify-content: space-between;
  padding: 1rem 1.5rem;
}

.logo {
  color: #fff;
  font-weight: 700;
  font-size: 1.4rem;
}

.nav-links {
  display: flex;
  gap: 1.5rem;
  list-style: none;
}

.nav-links a {
  color: #fff;
  text-decoration: none;
}

.card {
  background: #fff;
  border-radius: 16px;
  padding: 2rem;
  box-shadow: 0 10px 30px rgba(0, 0, 0, 0.15);
  transition: transform 0.25s ease, box-shadow 0.25s ease;
}

.card:hover {
  transform: translateY(-4px);
  box-shadow: 0 16px 40px rgba(0, 0, 0, 0.2);
}

.hero {
  margin: 3rem 0 2rem;
  text-align: center;
}

.hero h1 {
  font-size: 2.5rem;
  margin-bottom: 1rem;
}

.prompt-echo {
  color: #4b5563;
  margin-bottom: 1.5rem;
}

.btn {
  background: linear-gradient(135deg, #667eea, #764ba2);
  color: #fff;
  border: none;
  border-radius: 999px;
  padding: 0.8rem 2rem;
  font-size: 1rem;
  cursor: pointer;
  transition: transform 0.2s ease, opacity 0.2s ease;
}

.btn:hover {
  transform: scale(1.05);
  opacity: 0.9;
}

.hidden-message {
  display: none;
  margin-top: 1.5rem;
  color: #764ba2;
  font-weight: 600;
}

.hidden-message.visible {
  display: block;
}

.features {
  display: grid;
  grid-template-columns: repeat(3, 1fr);
  gap: 1.5rem;
  margin-bottom: 3rem;
}

.feature-card.hovered {
  border-top: 4px solid #667eea;
}

.site-footer {
  text-align: center;
  color: #fff;
  padding: 2rem 0;
}

@media (max-width: 768px) {
  .features {
    grid-template-columns: 1fr;
  }

  .hero h1 {
    font-size: 1.8rem;
  }

  .nav-links {
    gap: 0.75rem;
  }
}
"""

FALLBACK_JS = """document.addEventListener('DOMContentLoaded', function () {
  var button = document.getElementById('cta-button');
  var message = document.getElementById('hidden-message');

  if (button && message) {
    button.addEventListener('click', function () {
      message.classList.toggle('visible');
      button.textContent = message.classList.contains('visible') ? 'Hide Message' : 'Get Started';
    });
  }

  document.querySelectorAll('.feature-card').forEach(function (card) {
    card.addEventListener('mouseenter', function () {
      card.classList.add('hovered');
    });
    card.addEventListener('mouseleave', function () {
      card.classList.remove('hovered');
    });
  });
});
"""


def _escape_html(text: str) -> str:
    return (text or '').replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;').replace('"', '&quot;')


def fallback_html(prompt: str) -> str:
    return FALLBACK_HTML.replace('%PROMPT%', _escape_html((prompt or '').strip()))


def fallback_css() -> str:
    return FALLBACK_CSS


def fallback_js() -> str:
    return FALLBACK_JS


def clean_html(html: str) -> str:
    text = unescape_content(html).strip()
    if not text:
        return ''
    lowered = text.lower()
    if lowered.startswith('<!doctype'):
        return text
    if lowered.startswith('<html'):
        return '<!DOCTYPE html>\n' + text
    logger.info('HTML is a fragment; wrapping it in a document shell')
    return HTML_SHELL.replace('%BODY%', text)


_CSS_COMMENT_RE = re.compile(r'/\*.*?\*/', re.DOTALL)
_BASE_SELECTOR_RE = re.compile(r'(?:^|[\s,}])(?:body|\*)(?=[\s,{:.#\[>~+])')


def clean_css(css: str) -> str:
    text = unescape_content(css).strip()
    if not text:
        return ''
    if not _BASE_SELECTOR_RE.search(_CSS_COMMENT_RE.sub('', text)):
        text = BASELINE_CSS + '\n' + text
    return text


_JS_OPENER_RE = re.compile(
    r'^[ \t]*(?:if\s*\(.*\)|function\s*[\w$]*\s*\([^)]*\))\s*\{',
    re.MULTILINE,
)
_KEEP_SINGLE_CHARS = set('{}()[];')


def _block_closes(js: str, brace: int) -> bool:
    depth = 0
    for ch in js[brace:]:
        if ch == '{':
            depth += 1
        elif ch == '}':
            depth -= 1
            if depth == 0:
                return True
    return False


def _drop_unclosed_openers(js: str) -> str:
    while True:
        for m in reversed(list(_JS_OPENER_RE.finditer(js))):
            if not _block_closes(js, m.end() - 1):
                logger.info('Dropping unterminated block at offset %d of generated script', m.start())
                js = js[:m.start()].rstrip()
                break
        else:
            return js


def repair_js(js: str) -> str:
    """Best-effort cleanup of truncated model script; not a parser."""
    text = _drop_unclosed_openers(js)
    lines = [
        line for line in text.split('\n')
        if not (len(line.strip()) == 1 and line.strip() not in _KEEP_SINGLE_CHARS)
    ]
    return '\n'.join(lines).strip()


def clean_js(js: str) -> str:
    text = unescape_content(js).strip()
    if not text:
        return ''
    return repair_js(text)


def build_result(fields: Dict[str, str], prompt: str) -> GenerationResult:
    """Validate extracted fields and fill any empty one from the canned site."""
    html = clean_html(fields.get('html') or '')
    css = clean_css(fields.get('css') or '')
    js = clean_js(fields.get('js') or '')

    # Each field falls back on its own.
    if not html:
        logger.warning('No usable HTML recovered; using fallback page')
        html = fallback_html(prompt)
    if not css:
        logger.warning('No usable CSS recovered; using fallback stylesheet')
        css = fallback_css()
    if not js:
        logger.warning('No usable JS recovered; using fallback script')
        js = fallback_js()
    return GenerationResult(html=html, css=css, js=js)
