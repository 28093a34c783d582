import pytest


MASTER_XLF = """<?xml version="1.0" encoding="UTF-8" ?>
<xliff version="1.2" xmlns="urn:oasis:names:tc:xliff:document:1.2">
  <file source-language="en" datatype="plaintext" original="ng2.template">
    <body>
      <trans-unit id="greeting" datatype="html">
        <source>Hello <x id="INTERPOLATION" equiv-text="{{ name }}"/>!</source>
        <context-group purpose="location">
          <context context-type="sourcefile">app/app.component.html</context>
          <context context-type="linenumber">3</context>
        </context-group>
        <note priority="1" from="description">greeting text</note>
        <note priority="1" from="meaning">home</note>
      </trans-unit>
      <trans-unit id="bold" datatype="html">
        <source>Click <x id="START_BOLD_TEXT" ctype="x-b" equiv-text="&lt;b&gt;"/>here<x id="CLOSE_BOLD_TEXT" ctype="x-b" equiv-text="&lt;/b&gt;"/></source>
      </trans-unit>
      <trans-unit id="items" datatype="html">
        <source>{count, plural, =0 {none} =1 {one item} other {<x id="INTERPOLATION"/> items}}</source>
      </trans-unit>
    </body>
  </file>
</xliff>
"""

MASTER_XLF2 = """<?xml version="1.0" encoding="UTF-8" ?>
<xliff version="2.0" xmlns="urn:oasis:names:tc:xliff:document:2.0" srcLang="en">
  <file id="ngi18n" original="ng.template">
    <unit id="greeting">
      <notes>
        <note category="description">greeting text</note>
        <note category="meaning">home</note>
        <note category="location">app/app.component.html:3</note>
      </notes>
      <segment>
        <source>Hello <ph id="0" equiv="INTERPOLATION" disp="{{ name }}"/>!</source>
      </segment>
    </unit>
    <unit id="bold">
      <segment>
        <source>Click <pc id="0" equivStart="START_BOLD_TEXT" equivEnd="CLOSE_BOLD_TEXT" type="fmt" dispStart="&lt;b&gt;" dispEnd="&lt;/b&gt;">here</pc></source>
      </segment>
    </unit>
  </file>
</xliff>
"""

MASTER_XMB = """<?xml version="1.0" encoding="UTF-8" ?>
<messagebundle>
  <msg id="greeting" desc="greeting text" meaning="home"><source>app/app.component.html:3</source>Hello <ph name="INTERPOLATION"><ex>INTERPOLATION</ex></ph>!</msg>
  <msg id="bye"><source>app/app.component.html:5</source>Goodbye</msg>
</messagebundle>
"""

XTB_DE = """<?xml version="1.0" encoding="UTF-8"?>
<translationbundle lang="de">
  <translation id="greeting">Hallo <ph name="INTERPOLATION"/>!</translation>
  <translation id="old">Alt</translation>
</translationbundle>
"""


def xlf(*units: str, source_lang: str = "en", target_lang: str | None = None) -> str:
    """A small XLIFF 1.2 document holding the given trans-units."""
    target = f' target-language="{target_lang}"' if target_lang else ""
    body = "\n".join(f"      {u}" for u in units)
    return (
        '<?xml version="1.0" encoding="UTF-8" ?>\n'
        '<xliff version="1.2" xmlns="urn:oasis:names:tc:xliff:document:1.2">\n'
        f'  <file source-language="{source_lang}"{target} datatype="plaintext" original="ng2.template">\n'
        "    <body>\n"
        f"{body}\n"
        "    </body>\n"
        "  </file>\n"
        "</xliff>\n"
    )


def tu(unit_id: str, source: str, target: str | None = None, state: str = "translated", extra: str = "") -> str:
    target_xml = f'<target state="{state}">{target}</target>' if target is not None else ""
    return f'<trans-unit id="{unit_id}" datatype="html"><source>{source}</source>{target_xml}{extra}</trans-unit>'


@pytest.fixture
def master_xlf():
    return MASTER_XLF


@pytest.fixture
def master_xlf2():
    return MASTER_XLF2


@pytest.fixture
def master_xmb():
    return MASTER_XMB


@pytest.fixture
def xtb_de():
    return XTB_DE
