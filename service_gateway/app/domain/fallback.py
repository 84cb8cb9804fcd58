"""
Deterministic offline answers served when an upstream cannot be reached.
"""

from typing import Any, Dict, Tuple

TOPIC_TABLE: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (
        ("array", "sorting"),
        "Arrays are fundamental data structures! For sorting:\n\n"
        "• **Bubble Sort**: O(n²) - Good for learning\n"
        "• **Quick Sort**: O(n log n) average - Very efficient\n"
        "• **Merge Sort**: O(n log n) - Stable, consistent\n\n"
        "Key tip: Practice with different array problems to master pointer techniques!",
    ),
    (
        ("tree", "binary"),
        "Binary Trees are crucial for DSA! Key concepts:\n\n"
        "• **Traversals**: Inorder, Preorder, Postorder\n"
        "• **BST Properties**: Left < Root < Right\n"
        "• **Common Problems**: Height, Diameter, LCA\n\n"
        "Start with basic traversals and build up to complex tree problems!",
    ),
    (
        ("graph", "bfs", "dfs"),
        "Graph algorithms are powerful! Essential ones:\n\n"
        "• **BFS**: Level-order, shortest path in unweighted graphs\n"
        "• **DFS**: Deep exploration, cycle detection\n"
        "• **Dijkstra**: Shortest path with weights\n"
        "• **Union-Find**: Connected components\n\n"
        "Visualize the graph first, then choose the right traversal method!",
    ),
    (
        ("dynamic", "dp"),
        "Dynamic Programming is all about optimization! Approach:\n\n"
        "1. **Identify**: Overlapping subproblems\n"
        "2. **Define**: State and recurrence relation\n"
        "3. **Implement**: Top-down (memoization) or bottom-up\n\n"
        "Start with Fibonacci, Climbing Stairs, then move to 2D DP problems!",
    ),
    (
        ("time", "complexity"),
        "Time Complexity Analysis:\n\n"
        "• **O(1)**: Constant - Hash operations\n"
        "• **O(log n)**: Logarithmic - Binary search\n"
        "• **O(n)**: Linear - Single loop\n"
        "• **O(n log n)**: Efficient sorting\n"
        "• **O(n²)**: Nested loops\n\n"
        "Always analyze your solution and think about optimizations!",
    ),
)

GENERIC_STUDY_TIP = (
    "Great question! DSA is all about practice and understanding patterns. "
    "Here are some general tips:\n\n"
    "• Start with easy problems and build confidence\n"
    "• Focus on understanding patterns rather than memorizing\n"
    "• Practice coding by hand sometimes\n"
    "• Explain your approach before coding\n\n"
    "What specific DSA topic would you like to explore?"
)

UNCLEAR_REPLY = (
    "I'm having trouble understanding that. "
    "Could you rephrase your question about DSA concepts?"
)


def fallback(request_text: Any) -> str:
    """Canned study answer for ``request_text``.

    Substring match against TOPIC_TABLE in order; first hit wins. Never raises.
    """
    query = request_text.lower() if isinstance(request_text, str) else ""
    for keywords, answer in TOPIC_TABLE:
        if any(keyword in query for keyword in keywords):
            return answer
    return GENERIC_STUDY_TIP


def _unavailable(field: str, what: str) -> Dict[str, Any]:
    return {
        field: None,
        "status": "unavailable",
        "message": f"{what} is temporarily unavailable. Please try again in a few minutes.",
    }


def chat_fallback(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"response": fallback(payload.get("message"))}


def course_fallback(payload: Dict[str, Any]) -> Dict[str, Any]:
    return _unavailable("courseId", "Course generation")


def resume_fallback(payload: Dict[str, Any]) -> Dict[str, Any]:
    return _unavailable("analysis", "Resume analysis")


def profile_fallback(payload: Dict[str, Any]) -> Dict[str, Any]:
    return _unavailable("profile", "Your profile")
