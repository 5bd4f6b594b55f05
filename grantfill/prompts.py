from dataclasses import replace
from typing import List, Optional

from .models import Question, QuestionType


def prompt_user_for(label: str, hint: str = "") -> Optional[str]:
    try:
        msg = f"[input needed] {label}"
        if hint:
            msg += f" ({hint})"
        msg += ": "
        val = input(msg).strip()
        return val or None
    except (KeyboardInterrupt, EOFError):
        return None


def prompt_user_choice(label: str, options: List[str]) -> Optional[str]:
    options = [o for o in options if o]
    if not options:
        print(f"[warn] No options found for: {label}")
        return None
    print(f"[choose] {label}")
    for i, opt in enumerate(options, 1):
        print(f"  {i}. {opt}")
    while True:
        ans = input("Enter number or type an option (blank to skip): ").strip()
        if not ans:
            return None
        if ans.isdigit():
            idx = int(ans)
            if 1 <= idx <= len(options):
                return options[idx - 1]
        low = ans.lower()
        for opt in options:
            if opt.lower() == low:
                return opt
        matches = [opt for opt in options if low in opt.lower()]
        if len(matches) == 1:
            return matches[0]
        elif len(matches) > 1:
            print("Multiple matches; please be more specific.")
        else:
            print("No match; try again.")


def prompt_user_multi(label: str, options: List[str]) -> List[str]:
    options = [o for o in options if o]
    if not options:
        print(f"[warn] No options found for: {label}")
        return []
    print(f"[choose multiple] {label}")
    for i, opt in enumerate(options, 1):
        print(f"  {i}. {opt}")
    print("Enter numbers (e.g., 1,3,5) or options separated by commas. Blank to skip.")
    while True:
        ans = input("> ").strip()
        if not ans:
            return []
        picks = [x.strip() for x in ans.split(",") if x.strip()]
        chosen, ok = [], True
        for p in picks:
            if p.isdigit():
                idx = int(p)
                if 1 <= idx <= len(options):
                    chosen.append(options[idx - 1])
                    continue
                ok = False
                break
            low = p.lower()
            exact = [o for o in options if o.lower() == low]
            if exact:
                chosen.append(exact[0])
                continue
            contains = [o for o in options if low in o.lower()]
            if len(contains) == 1:
                chosen.append(contains[0])
                continue
            ok = False
            break
        if ok:
            return list(dict.fromkeys(chosen))
        print("Some items didn’t match uniquely; try again.")


def yes_no(prompt_text: str, default: bool = False) -> bool:
    default_str = "Y/n" if default else "y/N"
    ans = input(f"{prompt_text} [{default_str}] ").strip().lower()
    if not ans:
        return default
    return ans in ("y", "yes")


def needs_attention(q: Question) -> bool:
    return q.needs_manual_input or (q.required and not q.has_answer)


def complete_question(q: Question) -> Question:
    """Ask the operator for one answer. Blank input leaves the question as it was."""
    label = q.question_text
    if q.char_limit:
        label += f" (max {q.char_limit} chars)"
    if q.type is QuestionType.MULTI_CHOICE:
        picks = prompt_user_multi(label, q.choice_options)
        if not picks:
            return q
        return replace(q, answer=picks, needs_manual_input=False, reviewed=True)
    if q.type in (QuestionType.SINGLE_CHOICE, QuestionType.YES_NO):
        choice = prompt_user_choice(label, q.choice_options)
        if not choice:
            return q
        return replace(q, answer=choice, needs_manual_input=False, reviewed=True)
    val = prompt_user_for(label, q.answer_text[:80] if q.answer_text else "")
    if not val:
        return q
    return replace(q, answer=val, needs_manual_input=False, reviewed=True)


def review_questions(questions: List[Question], everything: bool = False) -> List[Question]:
    """Walk the questions that need a human (or all of them) and collect answers."""
    todo = [q for q in questions if everything or needs_attention(q)]
    if not todo:
        print("[review] nothing needs manual input.")
        return list(questions)
    print(f"\n[review] {len(todo)} question(s) need your input:")
    return [complete_question(q) if (everything or needs_attention(q)) else q for q in questions]


def wait_for_review():
    try:
        input("\n[review] Browser left open for review. Press Enter to close it... ")
    except (KeyboardInterrupt, EOFError):
        pass
