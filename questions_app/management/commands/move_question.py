from concurrent.futures import TimeoutError as FutureTimeoutError

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from questions_app.services.controller import QuizQuestionsController
from questions_app.services.errors import NoOpError, NotFoundError


class Command(BaseCommand):
    help = 'Moves a question of a quiz to a new position (1-based) and prints the resulting order'

    def add_arguments(self, parser):
        parser.add_argument('quiz_id')
        parser.add_argument('question_id')
        parser.add_argument('position', type=int)
        parser.add_argument('--token', default=None,
                            help='JWT access token (defaults to QUESTIONS_API_ACCESS_TOKEN)')
        parser.add_argument('--timeout', type=float, default=30.0,
                            help='Seconds to wait for the backend to confirm the move')

    def build_controller(self, quiz_id, token):
        return QuizQuestionsController(quiz_id, access_token=token)

    def wait(self, future, options, what):
        try:
            return future.result(timeout=options['timeout'])
        except FutureTimeoutError:
            raise CommandError(
                f'The backend did not answer {what} within {options["timeout"]}s.') from None

    def handle(self, *args, **options):
        token = options['token'] or getattr(settings, 'QUESTIONS_API_ACCESS_TOKEN', None)
        controller = self.build_controller(options['quiz_id'], token)
        try:
            self.wait(controller.load(), options, 'the question list request')
            if controller.notifications:
                raise CommandError(controller.notifications[-1].message)

            # ids come back from JSON as str or int; match on the text form
            item_id = next(
                (item.id for item in controller.current_order() if str(item.id) == options['question_id']),
                options['question_id'],
            )
            try:
                future = controller.move_item(item_id, options['position'] - 1)
            except NotFoundError as exc:
                raise CommandError(str(exc)) from exc
            except NoOpError:
                raise CommandError(f'Question {item_id} is already at position {options["position"]}.') from None
            self.wait(future, options, 'the reorder request')

            errors = [n for n in controller.notifications if n.level == 'error']
            if errors:
                raise CommandError(f'{errors[-1].message}; the order was reloaded from the backend.')
            for item in controller.current_order():
                title = item.payload.get('title', '')
                self.stdout.write(f'{item.rank:>3}  {item.id}  {title}')
            self.stdout.write(self.style.SUCCESS('Question order updated.'))
        finally:
            controller.close()
