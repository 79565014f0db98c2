"""
Taleweave fragment syntax.

This module contains the Lark grammar for a single grammar fragment: literal
text interleaved with rule references (``#name.mod#``) and action groups
(``[key:value]``, ``[#rule#]``). It is parsed with LALR and the contextual
lexer, so which terminals are legal depends on where the parser is.
"""

fragment_grammar = r"""
    start: _segment*

    _segment: rule | action | text

    // --- Rule references ---
    // #name#, #name.mod.mod(p1,p2)#, #[key:value][#other#]name.mod#
    rule: "#" action* NAME modifiers "#"
    modifiers: ("." MODIFIER)*

    // --- Actions ---
    // [key:text], [key:a,b,c], [key:#rule#], [#rule#]
    action: "[" KEY? action_body "]"
    action_body: (rule | action | body_text)*

    text: TEXT
    body_text: BODY_TEXT

    // --- Terminals ---
    KEY.2: /[A-Za-z0-9_-]+:/
    NAME: /[A-Za-z0-9_-]+/
    MODIFIER: /[^.#\[\]]+/
    TEXT: /[^#\[]+/
    BODY_TEXT: /[^#\[\]]+/
"""
