"""Text decoding, markup scanning and XML escaping helpers."""

import re

# name="value", name='value' or name=token
ATTRIBUTE_PATTERN = re.compile(
    r"""([\w:.-]+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))"""
)

TAG_NAME_PATTERN = re.compile(r"^\s*<[^\s/>]+")

CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.IGNORECASE | re.DOTALL)

# Named entities found in upstream feeds; numeric references are decoded too
ENTITY_MAP = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
}
ENTITY_PATTERN = re.compile(
    "|".join(re.escape(entity) for entity in ENTITY_MAP)
    + r"|&#(\d{1,7});|&#[xX]([0-9a-fA-F]{1,6});"
)

MAX_CODE_POINT = 0x10FFFF
SURROGATES = range(0xD800, 0xE000)

# XML 1.0 forbids these control characters (tab, LF and CR are allowed)
CONTROL_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def tag_attributes(tag: str) -> dict[str, str]:
    """Read the attributes of a single opening tag.

    Names are lower-cased; values are returned raw (still entity-encoded).
    The first occurrence of a repeated attribute wins.
    """
    attributes: dict[str, str] = {}
    rest = TAG_NAME_PATTERN.sub("", tag, count=1)
    for match in ATTRIBUTE_PATTERN.finditer(rest):
        name = match.group(1).lower()
        value = next(group for group in match.groups()[1:] if group is not None)
        attributes.setdefault(name, value)
    return attributes


def strip_cdata(text: str) -> str:
    """Remove CDATA wrapper syntax, keeping the wrapped text."""
    if not text:
        return ""
    return CDATA_PATTERN.sub(r"\1", text)


def _replace_entity(match: re.Match) -> str:
    decimal, hexadecimal = match.groups()
    if decimal is None and hexadecimal is None:
        return ENTITY_MAP[match.group(0)]

    code_point = int(decimal) if decimal is not None else int(hexadecimal, 16)
    if not 0 < code_point <= MAX_CODE_POINT or code_point in SURROGATES:
        return match.group(0)
    return chr(code_point)


def decode_entities(text: str) -> str:
    """Unescape named entities and numeric character references in one pass.

    Text produced by a replacement is never scanned again, so ``&amp;lt;``
    decodes to ``&lt;`` and not to ``<``. References to code points that
    cannot appear in text (zero, surrogates, beyond U+10FFFF) are kept.
    """
    if not text:
        return ""
    return ENTITY_PATTERN.sub(_replace_entity, text)


def decode(text: str) -> str:
    """Strip CDATA wrappers and decode entities once."""
    return decode_entities(strip_cdata(text))


def normalize_url(url: str | None) -> str:
    """Decode a URL until stable.

    Image URLs are often escaped more than once upstream (``&amp;amp;``).
    Repeating the decode collapses every layer, so the result is the same no
    matter how many times the input was escaped.
    """
    if not url:
        return ""

    current = url
    while True:
        decoded = decode_entities(strip_cdata(current)).strip()
        if decoded == current:
            return current
        current = decoded


def escape(text: str) -> str:
    """Escape text for XML element content and attribute values.

    Args:
        text: Decoded text

    Returns:
        Text with ``&``, ``<``, ``>`` and ``"`` replaced by entities
    """
    if not text:
        return ""

    text = CONTROL_PATTERN.sub("", text)
    text = text.replace("&", "&amp;")
    text = text.replace("<", "&lt;")
    text = text.replace(">", "&gt;")
    text = text.replace('"', "&quot;")

    return text


def cdata(text: str) -> str:
    """Wrap text in a CDATA section that stays well-formed."""
    text = CONTROL_PATTERN.sub("", text or "")
    # A literal ']]>' would end the section early
    text = text.replace("]]>", "]]]]><![CDATA[>")
    return f"<![CDATA[{text}]]>"
