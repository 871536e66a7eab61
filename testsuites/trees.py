"""
Tree builders shared by the unit and integration suites.

Layout of ``login_page()`` (boxes are x, y, width, height):

    html                               0,0 1000x800
      body
        form#login                     100,100 400x300
          label[for=username] "Username"   110,110 80x20
          input#username               200,110 200x20
          label[for=password] "Password"   110,150 80x20
          input#password               200,150 200x20
          button[data-testid=btn-submit] " Log   In "   200,200 100x30
          button#cancel "Cancel"       320,200 80x30
        div#toast (hidden, no box) "Login  error"
        a[href=/help] "Need\\n help?"  100,450 80x16
        a[href=/home] "Home"           (no box)
        div#dup "first"                600,100 50x50
        div#dup "second"               600,200 50x50
"""

from __future__ import annotations

from typing import Dict

from locator_engine.framework.tree import Node


def login_page() -> Node:
    form = Node("form", {"id": "login", "class": "card  login-form"}, bounding_box=[100, 100, 400, 300])
    form.append_child(Node("label", {"for": "username"}, "Username", bounding_box=[110, 110, 80, 20]))
    form.append_child(Node(
        "input",
        {"id": "username", "name": "username", "type": "text", "class": "field\tprimary",
         "placeholder": "Username or email"},
        bounding_box=[200, 110, 200, 20],
    ))
    form.append_child(Node("label", {"for": "password"}, "Password", bounding_box=[110, 150, 80, 20]))
    form.append_child(Node(
        "input",
        {"id": "password", "name": "password", "type": "password", "class": "field"},
        bounding_box=[200, 150, 200, 20],
    ))
    form.append_child(Node(
        "button",
        {"type": "submit", "data-testid": "btn-submit", "class": "btn btn-primary", "lang": "en-US"},
        " Log   In ",
        bounding_box=[200, 200, 100, 30],
    ))
    form.append_child(Node("button", {"id": "cancel", "class": "btn"}, "Cancel", bounding_box=[320, 200, 80, 30]))

    body = Node("body", children=[
        form,
        Node("div", {"id": "toast", "class": "toast error", "role": "alert"}, "Login  error", visible=False),
        Node("a", {"href": "/help"}, "Need\n help?", bounding_box=[100, 450, 80, 16]),
        Node("a", {"href": "/home"}, "Home"),
        Node("div", {"id": "dup"}, "first", bounding_box=[600, 100, 50, 50]),
        Node("div", {"id": "dup"}, "second", bounding_box=[600, 200, 50, 50]),
    ])
    return Node("html", children=[body], bounding_box=[0, 0, 1000, 800])


def by_text(root: Node) -> Dict[str, Node]:
    """Index nodes by their normalized own text (first one wins)."""
    index: Dict[str, Node] = {}
    for node in root.iter_preorder():
        if node.normalized_text:
            index.setdefault(node.normalized_text, node)
    return index


def grid(rows: int = 3, cols: int = 3, size: int = 10, gap: int = 10) -> Node:
    """Rows x cols cells named ``cell-r-c`` laid out on a regular grid."""
    root = Node("div", {"id": "grid"}, bounding_box=[0, 0, cols * (size + gap), rows * (size + gap)])
    for r in range(rows):
        for c in range(cols):
            root.append_child(Node(
                "span",
                {"id": f"cell-{r}-{c}", "class": "cell"},
                bounding_box=[c * (size + gap), r * (size + gap), size, size],
            ))
    return root
