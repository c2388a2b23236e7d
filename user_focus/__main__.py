from .app import UserFocusApp


def main() -> None:
    UserFocusApp().run()


if __name__ == "__main__":
    main()
