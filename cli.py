import argparse
import logging
from typing_extensions import *

from automaton import EPSILON, Automaton
from conversions import CONVERTERS
from dot import render
from grammar import HIERARCHY, Grammar, parse
from io_utils import EPSILON_ALIASES, load_from_file, parse_decomposition
from pumping import LanguageClass, check_pumping
from simulators import simulate

HELP = """
Commands:
  LOADING:
    load <file>                      - Load automata/grammars from file
    list                             - List all loaded items
    show <name>                      - Show automaton or grammar

  AUTOMATA:
    run <name> <word> [max_steps]    - Simulate and print the trace (ε for empty word)
    graph <name>                     - Render automaton to <name>.png

    CONVERSIONS:
      to_dfa <name> [result]         - NFA to DFA (subset construction)
      to_nfa <name> [result]         - DFA to NFA
      to_moore <name> [result] [out] - Mealy to Moore, optional start output
      to_mealy <name> [result]       - Moore to Mealy

  GRAMMARS:
    parse <name> <word>              - Parse word, print trace and parse tree
    classify <name>                  - Place grammar in the Chomsky hierarchy

  PUMPING LEMMA:
    pump <lang> <p> <i> <word> <decomposition> <description...>
                                     - lang: regular | context-free | non-context-free
                                       decomposition: x=a,y=a,z=bb or u=,v=a,x=,w=b,y=

  GENERAL:
    delete <name>                    - Delete item
    clear                            - Clear all
    exit                             - Exit
"""


def _word(text: str) -> str:
    return "" if text in EPSILON_ALIASES else text


def main(argv: Optional[Sequence[str]] = None):
    """Simple interactive terminal for automaton and grammar operations."""
    parser = argparse.ArgumentParser(description="Automata and grammar terminal")
    parser.add_argument("files", nargs="*", help="definition files to load at start")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    automata: Dict[str, Automaton] = {}
    grammars: Dict[str, Grammar] = {}

    def load(filename: str):
        loaded_automata, loaded_grammars = load_from_file(filename)
        automata.update(loaded_automata)
        grammars.update(loaded_grammars)
        if loaded_automata or loaded_grammars:
            msg = []
            if loaded_automata:
                msg.append(f"{len(loaded_automata)} automata: {', '.join(loaded_automata)}")
            if loaded_grammars:
                msg.append(f"{len(loaded_grammars)} grammars: {', '.join(loaded_grammars)}")
            print(f"Loaded {' and '.join(msg)}")
        else:
            print("No items loaded")

    for filename in args.files:
        try:
            load(filename)
        except OSError as e:
            print(f"Error: {e}")

    print("Automata & Grammar Terminal - Type 'help' for commands\n")

    while True:
        try:
            command = input("> ").strip()
            if not command:
                continue

            parts = command.split()
            cmd = parts[0].lower()

            # Exit
            if cmd in ["exit", "quit"]:
                break

            # Help
            elif cmd == "help":
                print(HELP)

            # Load
            elif cmd == "load":
                if len(parts) < 2:
                    print("Usage: load <filename>")
                    continue
                load(parts[1])

            # List
            elif cmd == "list":
                if automata or grammars:
                    if automata:
                        print("Automata:")
                        for name, aut in sorted(automata.items()):
                            print(f"  {name}: {aut.kind.name}, {len(aut.states)} states")
                    if grammars:
                        print("Grammars:")
                        for name, gram in sorted(grammars.items()):
                            print(
                                f"  {name}: {len(gram.N)} non-terminals, "
                                f"{sum(len(p) for p in gram.P.values())} productions"
                            )
                else:
                    print("Nothing loaded")

            # Show automaton or grammar
            elif cmd == "show":
                if len(parts) < 2:
                    print("Usage: show <name>")
                elif parts[1] in automata:
                    print(f"\n{parts[1]}: {automata[parts[1]]}\n")
                elif parts[1] in grammars:
                    print(f"\n{parts[1]}: {grammars[parts[1]]}")
                else:
                    print(f"Not found: {parts[1]}")

            # Simulate
            elif cmd == "run":
                if len(parts) < 3:
                    print("Usage: run <name> <word> [max_steps]")
                elif parts[1] not in automata:
                    print(f"Automaton not found: {parts[1]}")
                else:
                    kwargs = {"max_steps": int(parts[3])} if len(parts) > 3 else {}
                    trace = simulate(automata[parts[1]], _word(parts[2]), **kwargs)
                    print(trace.format())

            # Conversions
            elif cmd in CONVERTERS:
                if len(parts) < 2:
                    print(f"Usage: {cmd} <name> [result]")
                elif parts[1] not in automata:
                    print(f"Automaton not found: {parts[1]}")
                else:
                    result_name = parts[2] if len(parts) > 2 else f"{parts[1]}_{cmd[3:]}"
                    kwargs = {}
                    if cmd == "to_moore" and len(parts) > 3:
                        kwargs["start_output"] = parts[3]
                    trace = CONVERTERS[cmd](automata[parts[1]], **kwargs)
                    print(trace.format())
                    automata[result_name] = trace.result.automaton
                    print(f"Created: {result_name}")

            # Parse word with grammar
            elif cmd == "parse":
                if len(parts) < 3:
                    print("Usage: parse <grammar_name> <word>")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    trace = parse(grammars[parts[1]], _word(parts[2]))
                    print(trace.format())
                    if trace.result.parse_tree is not None:
                        print(f"Parse tree: {trace.result.parse_tree}")

            # Chomsky hierarchy
            elif cmd == "classify":
                if len(parts) < 2:
                    print("Usage: classify <grammar_name>")
                elif parts[1] not in grammars:
                    print(f"Grammar not found: {parts[1]}")
                else:
                    trace = grammars[parts[1]].classify()
                    print(trace.format())
                    print(f"{parts[1]}: {HIERARCHY[trace.result.grammar_type].label}")

            # Pumping lemma
            elif cmd == "pump":
                if len(parts) < 7:
                    print("Usage: pump <lang> <p> <i> <word> <decomposition> <description...>")
                else:
                    trace = check_pumping(
                        LanguageClass(parts[1].lower()),
                        " ".join(parts[6:]),
                        _word(parts[4]),
                        int(parts[2]),
                        parse_decomposition(parts[5]),
                        int(parts[3]),
                    )
                    print(trace.format())
                    if trace.result.pumped_string is not None:
                        print(f"Pumped string: {trace.result.pumped_string or EPSILON}")

            # Graph automaton
            elif cmd == "graph":
                if len(parts) < 2:
                    print("Usage: graph <name>")
                elif parts[1] not in automata:
                    print(f"Automaton not found: {parts[1]}")
                else:
                    print(f"Created: {render(automata[parts[1]], filename=parts[1])}")

            # Delete item
            elif cmd == "delete":
                if len(parts) < 2:
                    print("Usage: delete <name>")
                else:
                    deleted = automata.pop(parts[1], None) is not None
                    deleted = grammars.pop(parts[1], None) is not None or deleted
                    if deleted:
                        print(f"Deleted: {parts[1]}")
                    else:
                        print(f"Not found: {parts[1]}")

            # Clear all
            elif cmd == "clear":
                automata.clear()
                grammars.clear()
                print("Cleared all")

            else:
                print(f"Unknown command: {cmd}")

        except KeyboardInterrupt:
            print("\nUse 'exit' to quit")
        except EOFError:
            break
        except Exception as e:
            print(f"Error: {e}")

    print("Goodbye!")


if __name__ == "__main__":
    main()
