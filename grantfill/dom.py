import logging
import re
from typing import List

from playwright.sync_api import Error as PlaywrightError

from .models import ControlKind, FieldDescriptor

logger = logging.getLogger(__name__)

FIELD_ATTR = "data-field-index"
FRAME_ATTR = "data-grantfill-frame"

_SIMPLE_ID = re.compile(r"^[A-Za-z_][\w-]*$")

# Runs inside the page. Tags every usable control with a page-local index and
# returns plain descriptors. Same-origin iframes are scanned through
# contentDocument; cross-origin ones throw on access and yield nothing.
_EXTRACT_JS = r"""
() => {
  const FIELD_ATTR = "data-field-index";
  const FRAME_ATTR = "data-grantfill-frame";
  const SKIP_TYPES = new Set(["hidden", "submit", "button", "reset", "image", "file"]);

  const isVisible = (el) => {
    const view = el.ownerDocument.defaultView || window;
    const style = view.getComputedStyle(el);
    if (style.display === "none" || style.visibility === "hidden" || style.opacity === "0") return false;
    // no boxes at all: some ancestor is display:none
    return el.getClientRects().length > 0;
  };
  const cssEsc = (s) => (window.CSS && CSS.escape) ? CSS.escape(s) : s.replace(/["\\]/g, "\\$&");
  const text = (n) => ((n && (n.innerText || n.textContent)) || "").trim();

  const labelElementFor = (el, doc) => {
    if (el.id) {
      const byFor = doc.querySelector(`label[for="${cssEsc(el.id)}"]`);
      if (byFor) return byFor;
    }
    const wrap = el.closest("label");
    if (wrap) return wrap;
    const prev = el.previousElementSibling;
    if (prev && prev.tagName === "LABEL") return prev;
    return null;
  };

  const helperFor = (el, doc, labelEl) => {
    const described = el.getAttribute("aria-describedby") || "";
    if (described) {
      const t = described.split(/\s+/).map(id => text(doc.getElementById(id))).filter(Boolean).join(" ");
      if (t) return t;
    }
    if (!labelEl) return "";
    return Array.from(labelEl.querySelectorAll("span, small, p"))
      .map(text).filter(t => t.length > 20).join(" ");
  };

  const groupFor = (el) => {
    const fs = el.closest("fieldset");
    if (!fs) return "";
    return text(fs.querySelector("legend"));
  };

  const describe = (el, index, doc, frameIndex) => {
    const tag = el.tagName.toLowerCase();
    const type = tag === "input" ? (el.type || "text").toLowerCase() : (el.type || tag).toLowerCase();
    const labelEl = labelElementFor(el, doc);
    el.setAttribute(FIELD_ATTR, index);
    return {
      index,
      id: el.id || "",
      name: el.getAttribute("name") || "",
      type,
      value: el.getAttribute("value") || "",
      placeholder: el.getAttribute("placeholder") || "",
      ariaLabel: el.getAttribute("aria-label") || "",
      labelText: text(labelEl),
      helperText: helperFor(el, doc, labelEl),
      groupLabel: groupFor(el),
      required: el.hasAttribute("required") || el.getAttribute("aria-required") === "true",
      isIframe: frameIndex !== null,
      frameIndex,
    };
  };

  const describeEditable = (el, index, doc, frameIndex) => {
    let labelText = el.getAttribute("aria-label") || "";
    const labelledBy = el.getAttribute("aria-labelledby") || "";
    if (!labelText && labelledBy) {
      labelText = labelledBy.split(/\s+/).map(id => text(doc.getElementById(id))).filter(Boolean).join(" ");
    }
    if (!labelText && el.id) {
      labelText = text(doc.querySelector(`label[for="${cssEsc(el.id)}"]`));
    }
    if (!labelText) {
      const prev = el.previousElementSibling;
      if (prev && prev.tagName === "LABEL") labelText = text(prev);
    }
    el.setAttribute(FIELD_ATTR, index);
    return {
      index,
      id: el.id || "",
      name: el.getAttribute("name") || "",
      type: "contenteditable",
      value: "",
      placeholder: el.getAttribute("data-placeholder") || "",
      ariaLabel: el.getAttribute("aria-label") || "",
      labelText,
      helperText: "",
      groupLabel: groupFor(el),
      required: el.getAttribute("aria-required") === "true",
      isIframe: frameIndex !== null,
      frameIndex,
    };
  };

  const scan = (doc, frameIndex) => {
    const out = [];
    // indexes are only valid for this pass
    doc.querySelectorAll(`[${FIELD_ATTR}]`).forEach(el => el.removeAttribute(FIELD_ATTR));
    doc.querySelectorAll("input, textarea, select").forEach((el, i) => {
      if (el.tagName === "INPUT" && SKIP_TYPES.has((el.type || "").toLowerCase())) return;
      if (!isVisible(el)) return;
      if (el.disabled || el.readOnly) return;
      out.push(describe(el, `f${i}`, doc, frameIndex));
    });
    const editableSel = '[contenteditable]:not([contenteditable="false"])';
    doc.querySelectorAll(editableSel).forEach((el, i) => {
      if (el.parentElement && el.parentElement.closest(editableSel)) return;
      if (!isVisible(el)) return;
      out.push(describeEditable(el, `ce${i}`, doc, frameIndex));
    });
    return out;
  };

  const fields = scan(document, null);
  document.querySelectorAll("iframe").forEach((iframe, k) => {
    iframe.setAttribute(FRAME_ATTR, String(k));
    try {
      const doc = iframe.contentDocument || (iframe.contentWindow && iframe.contentWindow.document);
      if (!doc) return;
      fields.push(...scan(doc, k));
    } catch (e) {
      // cross-origin frame: not ours to read
    }
  });
  return fields;
}
"""


def extract_form_fields(page) -> List[FieldDescriptor]:
    """Discover every visible, writable control on the current page state."""
    raw = page.evaluate(_EXTRACT_JS)
    fields = [FieldDescriptor.from_dom(r) for r in raw]
    in_frames = sum(1 for f in fields if f.in_iframe)
    logger.info(f"[extract] {len(fields)} field(s) found ({in_frames} inside iframes)")
    return fields


def css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def frame_selector(field: FieldDescriptor) -> str:
    return f'iframe[{FRAME_ATTR}="{field.frame_index}"]'


def selector_for(field: FieldDescriptor) -> str:
    """Human-readable locator: id, then name, then the page-local index.

    Iframe fields are prefixed with their frame selector and ' >> '.
    """
    if field.id:
        sel = f"#{field.id}" if _SIMPLE_ID.match(field.id) else f'[id="{css_string(field.id)}"]'
    elif field.name and field.kind not in (ControlKind.RADIO, ControlKind.CHECKBOX):
        sel = f'[name="{css_string(field.name)}"]'
    else:
        sel = f'[{FIELD_ATTR}="{field.index}"]'
    if field.in_iframe:
        return f"{frame_selector(field)} >> {sel}"
    return sel


def scope_for(page, field: FieldDescriptor):
    if field.in_iframe and field.frame_index is not None:
        return page.frame_locator(frame_selector(field))
    return page


def locator_for(page, field: FieldDescriptor):
    """Exact locator for the element tagged during extraction."""
    return scope_for(page, field).locator(f'[{FIELD_ATTR}="{field.index}"]')


def read_current_value(locator, field: FieldDescriptor, timeout: int = 2000) -> str:
    try:
        if field.kind is ControlKind.CONTENTEDITABLE:
            return (locator.inner_text(timeout=timeout) or "").strip()
        return locator.input_value(timeout=timeout)
    except PlaywrightError:
        return ""


def highlight(locator):
    try:
        locator.evaluate("e => { e.style.outline = '3px solid #9333ea'; e.style.outlineOffset = '2px'; }")
    except PlaywrightError:
        pass
