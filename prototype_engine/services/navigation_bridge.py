"""
Preview navigation bridge.

Generated pages are shown in a sandboxed frame, so a plain relative link
would navigate the frame away from the prototype. The bridge script
intercepts those clicks and asks the parent window to switch files instead.
"""
from typing import Optional

from bs4 import BeautifulSoup

from prototype_engine.logging_config import logger


NAVIGATION_MESSAGE_TYPE = "navigate"

NAVIGATION_SCRIPT = """document.addEventListener('click', function(e) {
  let target = e.target;
  while (target && target.tagName !== 'A') target = target.parentElement;
  if (target && target.tagName === 'A') {
    const href = target.getAttribute('href');
    const targetAttr = target.getAttribute('target');
    if (href && !href.startsWith('#') && !href.startsWith('http') && !href.startsWith('javascript:') && targetAttr !== '_blank') {
      e.preventDefault();
      window.parent.postMessage({ type: 'navigate', payload: href }, '*');
    }
  }
}, false);"""

_MARKER = "window.parent.postMessage({ type: 'navigate'"


def has_navigation_bridge(html: str) -> bool:
    return _MARKER in html


def ensure_navigation_bridge(html: str) -> str:
    """Append the bridge script to <body> unless the page already has it."""
    if not html or has_navigation_bridge(html):
        return html
    if "<html" not in html.lower() and "<body" not in html.lower():
        # Not a full page (e.g. a stylesheet); leave it alone.
        return html

    soup = BeautifulSoup(html, "html.parser")
    script = soup.new_tag("script")
    script.string = NAVIGATION_SCRIPT

    body = soup.body
    if body is None:
        body = soup.new_tag("body")
        (soup.html or soup).append(body)
    body.append(script)

    logger.info("Injected navigation bridge into generated page")
    return str(soup)


def normalize_navigation_target(href: str) -> Optional[str]:
    """Turn a navigate payload into a generated file name."""
    if not href:
        return None
    target = href.strip()
    if target.startswith("./"):
        target = target[2:]
    # Drop fragments and query strings; the file set has plain names.
    target = target.split("#", 1)[0].split("?", 1)[0]
    return target or None
