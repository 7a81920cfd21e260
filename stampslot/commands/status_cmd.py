from stampslot.engine import count_remaining_valid_unstamped
from stampslot.state import count_page_display_filled, count_total_display_filled


def run(state, index) -> int:
    remaining = count_remaining_valid_unstamped(state, index)
    print(f"Tickets: {state.bookmark_tickets}")
    if state.free_spins_left:
        print(f"Free spins: {state.free_spins_left}")
    print(f"Dupe streak: {state.dupe_streak}")
    print(f"Spins: {state.stats.total_spins} (new {state.stats.total_new}, dupes {state.stats.total_dupe})")
    print(f"Album: {count_total_display_filled(state, index)}/1000 ({remaining} codes left)")
    for page in range(10):
        filled = count_page_display_filled(state, index, page)
        marks = []
        if state.page_rewarded[page]:
            marks.append("complete")
        if page == state.current_page:
            marks.append("current")
        suffix = f"  [{', '.join(marks)}]" if marks else ""
        print(f"  {page}xx {filled:3d}/100{suffix}")
    return 0
